"""
Module ORM registry (``club_modules._orm_registry``).

Ensures every module-level SQLAlchemy model is imported so that
``Base.metadata`` holds all table definitions before ``create_all()``.
``club_kernel.db.engine.create_tables`` calls this first.
"""


def import_all_orm_models() -> None:
    """Import every ``club_modules.*.orm`` module. Idempotent."""
    # referenced tables first
    import club_modules.members.orm  # noqa: F401
    import club_modules.activities.orm  # noqa: F401
    import club_modules.expenses.orm  # noqa: F401
    import club_modules.dues.orm  # noqa: F401
    import club_modules.payments.orm  # noqa: F401
