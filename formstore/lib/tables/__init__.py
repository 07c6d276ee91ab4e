DEFAULT_KNOWN_TABLES = ("Orders", "Documents", "Feedback")


def build_table_store(*args: object, **kwargs: object):
    from formstore.lib.tables.factory import build_table_store as _build_table_store

    return _build_table_store(*args, **kwargs)


__all__ = ["DEFAULT_KNOWN_TABLES", "build_table_store"]
