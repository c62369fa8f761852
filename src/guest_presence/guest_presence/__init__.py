"""Guest presence package.

Feature modules (guests, presence, activity) each carry a model, a repository
protocol, a service and a MySQL adapter, wired together in ``container.py``
with a thin Flask controller layer on top.
"""
