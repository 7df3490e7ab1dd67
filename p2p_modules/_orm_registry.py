"""
Module ORM Registry (``p2p_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table definition before tables are created.

Architecture position
---------------------
**Modules layer** -- utility.  Called by ``p2p_kernel.db.engine.create_tables``
and by ``tests/conftest.py``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``p2p_modules.*.orm`` module.

    Kernel tables (accounts, journal entries, number series) are registered
    first because module tables reference them.  Idempotent.
    """
    import p2p_kernel.models  # noqa: F401
    # fmt: off
    import p2p_modules.purchasing.orm  # noqa: F401
    import p2p_modules.payables.orm  # noqa: F401
    # fmt: on
