"""
Shared repository helpers
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_ignore(db: AsyncSession, table, index_elements, **values):
    """
    INSERT ... ON CONFLICT DO NOTHING for the session's dialect

    Args:
        db: session (its bind decides the dialect)
        table: Table to insert into
        index_elements: columns of the unique constraint that may conflict
        values: column values

    Returns:
        executable statement; rowcount is 1 when a row was inserted, 0 otherwise
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise NotImplementedError(f"insert-or-ignore not supported for dialect: {dialect}")

    return insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
