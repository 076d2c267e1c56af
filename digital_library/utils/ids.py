import uuid


def new_id() -> str:
    """Short random identifier for books, users and loans."""
    return uuid.uuid4().hex[:8]
