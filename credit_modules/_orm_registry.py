"""
Module ORM Registry (``credit_modules._orm_registry``).

Responsibility
--------------
Ensure the kernel and every module ORM model are imported so that
``Base.metadata`` contains their table definitions before tables are
created.  Called by ``credit_kernel.db.engine.create_tables``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``credit_modules.*.orm`` module.

    This function is idempotent -- repeated calls are harmless.
    """
    # Kernel tables first (farmers, organizations, suppliers, sequences)
    import credit_kernel.models  # noqa: F401
    import credit_modules.credit.orm  # noqa: F401
    import credit_modules.loans.orm  # noqa: F401
    import credit_modules.procurement.orm  # noqa: F401
