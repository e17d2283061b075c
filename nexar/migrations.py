from sqlalchemy import inspect, text


def _now_default(engine) -> str | None:
    return "CURRENT_TIMESTAMP" if engine.dialect.name == "postgresql" else None


def ensure_schema(engine) -> list[str]:
    """Bring an existing ``records`` table up to the current column set.

    ``create_all`` never alters tables that already exist, so columns added
    after a deployment went live are patched in here. Returns the statements
    that were applied.
    """
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    timestamp_type = "TIMESTAMP" if engine.dialect.name == "postgresql" else "DATETIME"
    timestamp_default = _now_default(engine)

    alters: list[str] = []
    if "records" in tables:
        columns = {col["name"] for col in inspector.get_columns("records")}
        for column in ("created_at", "updated_at"):
            if column in columns:
                continue
            if timestamp_default:
                alters.append(
                    f"ALTER TABLE records ADD COLUMN {column} {timestamp_type} DEFAULT {timestamp_default}"
                )
            else:
                alters.append(f"ALTER TABLE records ADD COLUMN {column} {timestamp_type}")
    _apply_alters(engine, alters)
    return alters


def _apply_alters(engine, statements: list[str]) -> None:
    if not statements:
        return
    with engine.begin() as connection:
        for statement in statements:
            connection.execute(text(statement))
