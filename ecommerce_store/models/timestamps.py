"""
Row modification timestamps maintained by the database engine

``updated_at_column()`` declares the column; ``install_update_triggers()``
makes every engine refresh it on any UPDATE that does not set it
explicitly, whether the statement comes from the ORM, Core or plain SQL:

* SQLite: an AFTER UPDATE trigger per table
* PostgreSQL: one trigger function plus a BEFORE UPDATE trigger per table
* MySQL: ``ON UPDATE CURRENT_TIMESTAMP`` on the column
"""
from sqlalchemy import DDL, Column, DateTime, FetchedValue, event, text
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.schema import CreateColumn

ON_UPDATE_NOW = "on_update_now"

SQLITE_TRIGGER = """\
CREATE TRIGGER trg_%(table)s_updated_at AFTER UPDATE ON %(table)s
FOR EACH ROW WHEN NEW.updated_at IS OLD.updated_at
BEGIN
    UPDATE %(table)s SET updated_at = CURRENT_TIMESTAMP WHERE %(pk)s = NEW.%(pk)s;
END"""

POSTGRES_FUNCTION = """\
CREATE OR REPLACE FUNCTION set_updated_at() RETURNS trigger AS $$
BEGIN
    IF NEW.updated_at IS NOT DISTINCT FROM OLD.updated_at THEN
        NEW.updated_at = now();
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql"""

POSTGRES_TRIGGER = """\
CREATE TRIGGER trg_%(table)s_updated_at BEFORE UPDATE ON %(table)s
FOR EACH ROW EXECUTE FUNCTION set_updated_at()"""


def updated_at_column() -> Column:
    # The ORM expires the attribute after an UPDATE and reads back the engine's value
    return Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        server_onupdate=FetchedValue(),
        info={ON_UPDATE_NOW: True},
    )


@compiles(CreateColumn, "mysql")
def _mysql_on_update(element, compiler, **kw):
    spec = compiler.visit_create_column(element, **kw)
    if spec is not None and element.element.info.get(ON_UPDATE_NOW):
        spec += " ON UPDATE CURRENT_TIMESTAMP"
    return spec


def install_update_triggers(metadata) -> None:
    """Attach the trigger DDL to every table carrying an ``updated_at_column()``"""
    tracked = [
        table for table in metadata.tables.values()
        if "updated_at" in table.c and table.c.updated_at.info.get(ON_UPDATE_NOW)
    ]
    if not tracked:
        return

    event.listen(metadata, "before_create", DDL(POSTGRES_FUNCTION).execute_if(dialect="postgresql"))
    event.listen(metadata, "after_drop", DDL("DROP FUNCTION IF EXISTS set_updated_at()").execute_if(dialect="postgresql"))
    for table in tracked:
        pk = list(table.primary_key.columns)[0].name
        event.listen(table, "after_create", DDL(SQLITE_TRIGGER, context={"pk": pk}).execute_if(dialect="sqlite"))
        event.listen(table, "after_create", DDL(POSTGRES_TRIGGER).execute_if(dialect="postgresql"))
