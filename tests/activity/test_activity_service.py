from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from guest_presence.activity.categories import ActivityCategory
from guest_presence.common.csv_export import UTF8_BOM
from guest_presence.core.enums import Role
from guest_presence.core.exceptions import Forbidden, GuestNotFound, NotFound, ValidationError

UTC = timezone.utc


@pytest.fixture
def guests(container):
    svc = container.guest_service
    return svc.register_guest(name="Aoi"), svc.register_guest(name="Ren, Jr.")


def test_upsert_buckets_timestamp_into_slot(container, guests):
    aoi, _ = guests
    entry = container.activity_service.upsert_log(
        guest_id=aoi.guest_id,
        categories=["LEGO"],
        timestamp="2026-10-19T09:05:00+09:00",
    )
    assert entry.bucket_start == datetime(2026, 10, 19, 0, 0, tzinfo=UTC)


def test_upsert_defaults_to_clock(container, guests):
    entry = container.activity_service.upsert_log(guest_id=guests[0].guest_id, categories=["MESH"])
    # fixed_now is 10:15 local
    assert entry.bucket_start == datetime(2026, 10, 19, 1, 0, tzinfo=UTC)


def test_second_upsert_in_same_slot_replaces_first(container, guests, repos):
    aoi, _ = guests
    svc = container.activity_service
    first = svc.upsert_log(guest_id=aoi.guest_id, categories=["LEGO"], description="castle", timestamp="2026-10-19T09:01:00+09:00")
    second = svc.upsert_log(
        guest_id=aoi.guest_id,
        categories=["DRONE", "UNITY"],
        description="flight sim",
        timestamp="2026-10-19T09:29:00+09:00",
    )
    assert len(repos["activity_repo"].by_key) == 1
    assert second.entry_id == first.entry_id
    assert second.categories == (ActivityCategory.DRONE, ActivityCategory.UNITY)
    assert second.description == "flight sim"


def test_upsert_validates_input(container, guests):
    svc = container.activity_service
    with pytest.raises(GuestNotFound):
        svc.upsert_log(guest_id="missing", categories=["LEGO"])
    with pytest.raises(ValidationError) as ei:
        svc.upsert_log(guest_id=guests[0].guest_id, categories=["LEGO"], description="x" * 101)
    assert ei.value.field == "description"
    with pytest.raises(ValidationError):
        svc.upsert_log(guest_id=guests[0].guest_id, categories=["LEGO"], timestamp="not a time")


def test_logs_for_date_use_local_day_boundaries(container, guests):
    aoi, ren = guests
    svc = container.activity_service
    svc.upsert_log(guest_id=ren.guest_id, categories=["LEGO"], timestamp="2026-10-19T10:00:00+09:00")
    svc.upsert_log(guest_id=aoi.guest_id, categories=["LEGO"], timestamp="2026-10-19T00:10:00+09:00")
    svc.upsert_log(guest_id=aoi.guest_id, categories=["LEGO"], timestamp="2026-10-18T23:50:00+09:00")

    logs = svc.get_logs_for_date("2026-10-19")
    assert [e.guest_id for e in logs] == [aoi.guest_id, ren.guest_id]


def test_export_emits_one_row_per_category(container, guests):
    aoi, ren = guests
    svc = container.activity_service
    svc.upsert_log(guest_id=ren.guest_id, categories=["OTHER", "VR_HMD"], mentor_note="great", timestamp="2026-10-19T10:10:00+09:00")
    svc.upsert_log(guest_id=aoi.guest_id, categories=["PEPPER"], timestamp="2026-10-19T10:20:00+09:00")

    export = svc.export_logs(start_date="2026-10-19", end_date="2026-10-19")
    assert [(r.guest_name, r.category) for r in export.rows] == [
        ("Aoi", ActivityCategory.PEPPER),
        ("Ren, Jr.", ActivityCategory.VR_HMD),
        ("Ren, Jr.", ActivityCategory.OTHER),
    ]
    assert export.rows[0].bucket_time == "10:00"


def test_export_category_filter_keeps_only_matching_rows(container, guests):
    aoi, ren = guests
    svc = container.activity_service
    svc.upsert_log(guest_id=ren.guest_id, categories=["OTHER", "VR_HMD"], timestamp="2026-10-19T10:10:00+09:00")
    svc.upsert_log(guest_id=aoi.guest_id, categories=["PEPPER"], timestamp="2026-10-19T10:20:00+09:00")

    export = svc.export_logs(start_date="2026-10-19", end_date="2026-10-20", categories=["VR_HMD"])
    assert [(r.guest_name, r.category) for r in export.rows] == [("Ren, Jr.", ActivityCategory.VR_HMD)]


def test_export_rejects_inverted_range_on_end_date(container):
    with pytest.raises(ValidationError) as ei:
        container.activity_service.export_logs(start_date="2026-10-20", end_date="2026-10-19")
    assert ei.value.field == "end_date"


def test_export_csv_quotes_and_labels(container, guests):
    _, ren = guests
    container.activity_service.upsert_log(
        guest_id=ren.guest_id, categories=["PRINTER_3D"], description='a "big" print', timestamp="2026-10-19T10:10:00+09:00"
    )
    text = container.activity_service.export_csv(start_date="2026-10-19", end_date="2026-10-19")
    assert not text.startswith(UTF8_BOM)
    header, row, tail = text.split("\r\n")
    assert header == "Date,Time,Display ID,Guest Name,Category,Description,Mentor Note"
    assert row == f'2026-10-19,10:00,{ren.display_id},"Ren, Jr.",3D Printer,"a ""big"" print",'
    assert tail == ""


def test_delete_requires_super_role(container, guests):
    entry = container.activity_service.upsert_log(guest_id=guests[0].guest_id, categories=["LEGO"])
    with pytest.raises(Forbidden):
        container.activity_service.delete_log(entry.entry_id, "manager")
    with pytest.raises(Forbidden):
        container.activity_service.delete_log(entry.entry_id, {"role": "janitor"})

    container.activity_service.delete_log(entry.entry_id, {"role": "super"})
    with pytest.raises(NotFound):
        container.activity_service.delete_log(entry.entry_id, Role.SUPER)


def test_upsert_rejects_slots_that_cannot_be_shown_locally(container, guests, repos):
    with pytest.raises(ValidationError) as ei:
        container.activity_service.upsert_log(
            guest_id=guests[0].guest_id, categories=["LEGO"], timestamp="9999-12-31T20:00:00Z"
        )
    assert ei.value.field == "timestamp"
    assert repos["activity_repo"].by_key == {}


def test_date_range_edges_are_validation_errors(container):
    svc = container.activity_service
    assert svc.get_logs_for_date("9999-12-31") == []
    assert svc.export_logs(start_date="9999-12-30", end_date="9999-12-31").rows == []
    with pytest.raises(ValidationError) as ei:
        svc.get_logs_for_date("0001-01-01")
    assert ei.value.field == "date"
    with pytest.raises(ValidationError) as ei:
        svc.export_logs(start_date="0001-01-01", end_date="0001-01-02")
    assert ei.value.field == "start_date"


def test_concurrent_upserts_into_one_slot_keep_a_single_entry(container, guests, repos):
    aoi, _ = guests
    n = 12
    start = threading.Barrier(n)
    lock = threading.Lock()
    entry_ids: list[str] = []

    def worker(i: int):
        start.wait()
        entry = container.activity_service.upsert_log(
            guest_id=aoi.guest_id,
            categories=["LEGO"],
            description=f"run {i}",
            timestamp=f"2026-10-19T09:{i:02d}:00+09:00",
        )
        with lock:
            entry_ids.append(entry.entry_id)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = list(repos["activity_repo"].by_key.values())
    assert len(stored) == 1
    assert set(entry_ids) == {stored[0].entry_id}
    assert stored[0].description in {f"run {i}" for i in range(n)}
