"""
NATS subject hierarchy for remote event storage.

Subject Structure:
    {namespace}.db.row.{table}.{operation}
    {namespace}.db.row.{table}.changed.{owner_id}

Examples:
    tminus.db.row.events.upsert
    tminus.db.row.events.select
    tminus.db.row.events.changed.alice
"""


class Subjects:
    """
    Builds the subjects used by NatsEventStore.

    Args:
        namespace: Top-level subject token (default: "tminus").
        table: Row table holding events (default: "events").
    """

    UPSERT = "upsert"
    SELECT = "select"
    DELETE = "delete"
    CHANGED = "changed"

    def __init__(self, namespace: str = "tminus", table: str = "events"):
        self.namespace = namespace
        self.table = table

    @property
    def base(self) -> str:
        """Prefix shared by every event-table subject."""
        return f"{self.namespace}.db.row.{self.table}"

    def operation(self, op: str) -> str:
        """Build a request subject for a row operation."""
        return f"{self.base}.{op}"

    @property
    def upsert(self) -> str:
        return self.operation(self.UPSERT)

    @property
    def select(self) -> str:
        return self.operation(self.SELECT)

    @property
    def delete(self) -> str:
        return self.operation(self.DELETE)

    def changed(self, owner_id: str) -> str:
        """Build the change-feed subject for one owner."""
        return f"{self.base}.{self.CHANGED}.{owner_id}"
