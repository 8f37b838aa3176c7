"""
Set primitives over association tables.

Every relation (likes, saves, tags, follows, blocks, comment likes) is a
table whose primary key is the pair of ids, so a single INSERT or DELETE is
an atomic add-to-set / remove-from-set.
"""
from sqlalchemy import Table, and_, delete, exists, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


def _match(table: Table, key: dict):
    return and_(*(table.c[column] == value for column, value in key.items()))


def has_member(db: Session, table: Table, **key) -> bool:
    return bool(db.execute(select(exists().where(_match(table, key)))).scalar())


def add_member(db: Session, table: Table, **key) -> bool:
    """Insert the pair unless present; returns False if it was already there.

    Must be the first pending change on the session: a concurrent duplicate
    insert is rolled back and reported as already present.
    """
    if has_member(db, table, **key):
        return False
    try:
        db.execute(insert(table).values(**key))
    except IntegrityError:
        db.rollback()
        return False
    return True


def remove_member(db: Session, table: Table, **key) -> bool:
    """Delete the pair; returns False if it was absent."""
    result = db.execute(delete(table).where(_match(table, key)))
    return result.rowcount > 0


def toggle_member(db: Session, table: Table, **key) -> bool:
    """Flip membership of the pair and commit. Returns True when now present.

    Must be the only pending change on the session: a concurrent duplicate
    insert is rolled back and reported as present.
    """
    if remove_member(db, table, **key):
        db.commit()
        return False
    try:
        db.execute(insert(table).values(**key))
        db.commit()
    except IntegrityError:
        db.rollback()
    return True


def count_members(db: Session, table: Table, **key) -> int:
    return db.execute(select(func.count()).select_from(table).where(_match(table, key))).scalar()
