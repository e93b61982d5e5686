"""Isolation level demonstrations played against the VersionedStore."""

from __future__ import annotations

from txdemo.config import STEP_DELAY
from txdemo.providers import Context, StepResult, StepSink, header
from txdemo.sample.store import READ_COMMITTED, SNAPSHOT, VersionedStore, WriteConflict


class Scenario:
    """Base class: subclasses implement _play() and the descriptive fields."""

    name = ""
    description = ""
    category = ""
    collection = ""

    def __init__(self, store: VersionedStore, step_delay: float = STEP_DELAY) -> None:
        self.store = store
        self.step_delay = step_delay

    def setup(self, ctx: Context) -> None:
        self.store.drop(self.collection)

    def cleanup(self, ctx: Context) -> None:
        self.store.drop(self.collection)

    def run(self, ctx: Context, sink: StepSink) -> None:
        try:
            self._play(ctx, sink)
        finally:
            sink.close()

    def _play(self, ctx: Context, sink: StepSink) -> None:
        raise NotImplementedError

    def pause(self, ctx: Context) -> None:
        if not ctx.sleep(self.step_delay):
            raise RuntimeError("run cancelled")

    def emit(
        self,
        sink: StepSink,
        session: str,
        description: str,
        query: str = "",
        result: str = "",
        success: bool = True,
    ) -> None:
        sink.put(StepResult(session, 0, description, query, result, success))


class DirtyReadScenario(Scenario):
    name = "Dirty Read Prevention"
    category = "Read Committed"
    collection = "dirty_read_demo"
    description = """Demonstrates how transactions prevent dirty reads.

Without transactions, reads might see uncommitted data. With transactions,
you only see committed data.

This scenario shows:
1. Session A starts a transaction and inserts a document
2. Session B tries to read - document is NOT visible (not committed yet)
3. Session A commits the transaction
4. Session B reads again - document IS now visible"""

    def _play(self, ctx: Context, sink: StepSink) -> None:
        coll = self.collection
        sink.put(header("🔒 Dirty Read Prevention Demonstration"))

        count = len(self.store.find(coll))
        self.emit(sink, "Setup", "Checking initial state - collection should be empty",
                  f"{coll}.count()", f"Count: {count}")

        session_a = self.store.begin(READ_COMMITTED)
        self.emit(sink, "Session A", "Starting a transaction",
                  "session.startTransaction()", "Transaction started")

        doc = {"product": "Widget", "price": 29.99, "status": "pending"}
        session_a.put(coll, "widget", doc)
        self.emit(sink, "Session A", "Inserted document within transaction (NOT YET COMMITTED)",
                  f'{coll}.insert({{product: "Widget", price: 29.99, status: "pending"}})',
                  "Insert successful (within transaction)")
        self.pause(ctx)

        session_b = self.store.begin(READ_COMMITTED)
        seen = session_b.find(coll)
        self.emit(sink, "Session B", "Reading documents (outside Session A's transaction)",
                  f"{coll}.find({{}})",
                  f"Documents found: {len(seen)} (uncommitted data NOT visible!)")
        sink.put(header("✅ Dirty read prevented! Session B cannot see Session A's uncommitted data"))
        self.pause(ctx)

        session_a.commit()
        self.emit(sink, "Session A", "Committing the transaction",
                  "session.commitTransaction()", "Transaction committed successfully")
        self.pause(ctx)

        seen = session_b.find(coll)
        session_b.commit()
        rows = [f'{{product: "{d["product"]}", price: {d["price"]}, status: "{d["status"]}"}}'
                for d in seen.values()]
        self.emit(sink, "Session B", "Reading documents again after Session A committed",
                  f"{coll}.find({{}})",
                  f"Documents found: {len(seen)}\n[{', '.join(rows)}]")
        sink.put(header("🎉 After commit, Session B can now see Session A's data"))


class ReadCommittedScenario(Scenario):
    name = "Read Committed (Non-Repeatable Read)"
    category = "Read Committed"
    collection = "read_committed_demo"
    description = """Demonstrates Read Committed isolation.

With this isolation level:
- Reads only see data that has been committed
- The same read repeated inside one transaction may return different values

This scenario shows:
1. Session A debits $500 inside a transaction
2. Session B reads the ORIGINAL balance
3. Session A commits; Session B's next read sees the new balance"""

    def setup(self, ctx: Context) -> None:
        super().setup(ctx)
        self.store.put(self.collection, "checking", {"account": "checking", "balance": 1000.0})

    def _play(self, ctx: Context, sink: StepSink) -> None:
        coll = self.collection
        sink.put(header("💰 Read Committed Isolation Demonstration"))

        initial = self.store.get(coll, "checking")
        self.emit(sink, "Setup", "Initial state - checking account",
                  f'{coll}.findOne({{account: "checking"}})', f"Balance: ${initial['balance']:.2f}")

        session_a = self.store.begin(READ_COMMITTED)
        self.emit(sink, "Session A", "Starting transaction (read committed)",
                  "session.startTransaction({isolation: 'read committed'})", "Transaction started")

        session_a.update(coll, "checking", balance=-500)
        self.emit(sink, "Session A", "Debiting $500 from checking account (within transaction)",
                  f'{coll}.updateOne({{account: "checking"}}, {{$inc: {{balance: -500}}}})',
                  "Update applied (NOT YET COMMITTED)")
        self.pause(ctx)

        session_b = self.store.begin(READ_COMMITTED)
        before = session_b.get(coll, "checking")
        self.emit(sink, "Session B", "Reading account inside its own transaction",
                  f'{coll}.findOne({{account: "checking"}})',
                  f"Balance: ${before['balance']:.2f} (ORIGINAL value - uncommitted changes not visible)")
        sink.put(header(
            "✅ Session B sees only committed data (original $1000), not Session A's uncommitted -$500"
        ))
        self.pause(ctx)

        session_a.commit()
        self.emit(sink, "Session A", "Committing the transaction",
                  "session.commitTransaction()", "Transaction committed - balance change now permanent")
        self.pause(ctx)

        after = session_b.get(coll, "checking")
        session_b.commit()
        self.emit(sink, "Session B", "Reading account again in the SAME transaction",
                  f'{coll}.findOne({{account: "checking"}})',
                  f"Balance: ${after['balance']:.2f} (UPDATED value now visible - non-repeatable read)")
        sink.put(header(
            f"🎉 After commit, Session B now sees the updated balance of ${after['balance']:.0f}"
        ))


class SnapshotIsolationScenario(Scenario):
    name = "Snapshot Isolation"
    category = "Snapshot (Repeatable Read)"
    collection = "snapshot_demo"
    description = """Demonstrates Snapshot Isolation.

With snapshot isolation:
- A transaction sees the data as it was when the transaction began
- Commits made by others afterwards stay invisible until it ends

This scenario shows:
1. Session A takes a snapshot and counts products
2. Session B inserts and commits a new product
3. Session A counts again - still the snapshot count"""

    PRODUCTS = {
        "WIDGET-001": {"sku": "WIDGET-001", "name": "Blue Widget", "quantity": 100},
        "WIDGET-002": {"sku": "WIDGET-002", "name": "Red Widget", "quantity": 50},
        "GADGET-001": {"sku": "GADGET-001", "name": "Super Gadget", "quantity": 25},
    }

    def setup(self, ctx: Context) -> None:
        super().setup(ctx)
        for sku, product in self.PRODUCTS.items():
            self.store.put(self.collection, sku, product)

    def _play(self, ctx: Context, sink: StepSink) -> None:
        coll = self.collection
        sink.put(header("📸 Snapshot Isolation Demonstration"))

        names = ", ".join(p["name"] for p in self.store.find(coll).values())
        count = len(self.store.find(coll))
        self.emit(sink, "Setup", "Initial inventory state",
                  f"{coll}.count()", f"Product count: {count} ({names})")

        session_a = self.store.begin(SNAPSHOT)
        self.emit(sink, "Session A", "Starting transaction with SNAPSHOT isolation",
                  "session.startTransaction({readConcern: 'snapshot'})",
                  "Transaction started - snapshot of database taken NOW")

        snapshot_count = len(session_a.find(coll))
        self.emit(sink, "Session A", "Reading product count within snapshot transaction",
                  f"{coll}.count()", f"Product count: {snapshot_count}")
        self.pause(ctx)

        self.store.put(coll, "GADGET-002", {"sku": "GADGET-002", "name": "Ultra Gadget", "quantity": 10})
        self.emit(sink, "Session B", "Inserting NEW product and COMMITTING immediately",
                  f'{coll}.insert({{sku: "GADGET-002", name: "Ultra Gadget", quantity: 10}})',
                  "New product 'Ultra Gadget' is now in the database")
        self.pause(ctx)

        total = len(self.store.find(coll))
        self.emit(sink, "Session B", "Session B verifies new product exists",
                  f"{coll}.count()", f"Product count: {total} (Session B sees {total} products)")
        self.pause(ctx)

        again = len(session_a.find(coll))
        self.emit(sink, "Session A", "Session A reads product count AGAIN (still in same transaction)",
                  f"{coll}.count()", f"Product count: {again} (SNAPSHOT - doesn't see new product!)")
        sink.put(header(
            f"✅ Snapshot isolation in action! Session A still sees {again} products, "
            f"even though Session B committed one more"
        ))

        session_a.commit()
        self.emit(sink, "Session A", "Committing Session A's transaction",
                  "session.commitTransaction()", "Transaction committed - snapshot released")
        self.pause(ctx)

        final = len(self.store.find(coll))
        self.emit(sink, "Session A", "Session A reads after transaction ends",
                  f"{coll}.count()",
                  f"Product count: {final} (Now sees all products including Ultra Gadget)")
        sink.put(header("🎉 Snapshot isolation provides a consistent view throughout the entire transaction"))


class WriteConflictScenario(Scenario):
    name = "Write Conflict Detection"
    category = "Serializable (Write Conflicts)"
    collection = "write_conflict_demo"
    description = """Demonstrates how write conflicts between transactions are detected.

When two transactions try to modify the same document:
- The first transaction to commit wins
- The second transaction gets a WriteConflict error
- This prevents lost updates and ensures data integrity"""

    ACCOUNT = "ACC-12345"

    def setup(self, ctx: Context) -> None:
        super().setup(ctx)
        self.store.put(
            self.collection,
            self.ACCOUNT,
            {"accountId": self.ACCOUNT, "holder": "John Doe", "balance": 1000.0},
        )

    def _play(self, ctx: Context, sink: StepSink) -> None:
        coll = self.collection
        find = f'{coll}.findOne({{accountId: "{self.ACCOUNT}"}})'
        sink.put(header("⚔️ Write Conflict Detection Demonstration"))

        initial = self.store.get(coll, self.ACCOUNT)
        self.emit(sink, "Setup", "Initial account state", find,
                  f"Account: {initial['holder']}, Balance: ${initial['balance']:.2f}")

        session_a = self.store.begin(SNAPSHOT)
        self.emit(sink, "Session A", "Starting transaction (snapshot isolation)",
                  "session.startTransaction({readConcern: 'snapshot'})",
                  "Transaction started - preparing $600 withdrawal")
        acct = session_a.get(coll, self.ACCOUNT)
        self.emit(sink, "Session A", "Reading current balance", find,
                  f"Balance: ${acct['balance']:.2f} - Will withdraw $600")
        self.pause(ctx)

        session_b = self.store.begin(SNAPSHOT)
        self.emit(sink, "Session B", "Starting SEPARATE transaction",
                  "session.startTransaction({readConcern: 'snapshot'})",
                  "Transaction started - will withdraw $700")
        session_b.update(coll, self.ACCOUNT, balance=-700)
        self.emit(sink, "Session B", "Withdrawing $700 from account",
                  f'{coll}.updateOne({{accountId: "{self.ACCOUNT}"}}, {{$inc: {{balance: -700}}}})',
                  "Update applied in transaction")
        session_b.commit()
        after_b = self.store.get(coll, self.ACCOUNT)
        self.emit(sink, "Session B", "Committing transaction", "session.commitTransaction()",
                  f"✓ Transaction committed! Balance now ${after_b['balance']:.0f}")
        self.pause(ctx)

        session_a.update(coll, self.ACCOUNT, balance=-600)
        self.emit(sink, "Session A", "Now attempting to withdraw $600 (Session A's original plan)",
                  f'{coll}.updateOne({{accountId: "{self.ACCOUNT}"}}, {{$inc: {{balance: -600}}}})',
                  "Attempting update...")
        try:
            session_a.commit()
        except WriteConflict:
            self.emit(sink, "Session A", "Attempting to commit transaction",
                      "session.commitTransaction()",
                      "❌ WriteConflict! Document was modified by another transaction",
                      success=False)
            sink.put(header("🛡️ Write conflict detected! Session A's withdrawal prevented to avoid overdraft"))
        else:
            self.emit(sink, "Session A", "Transaction result", "session.commitTransaction()",
                      "Transaction committed (no conflict detected)")
        self.pause(ctx)

        final = self.store.get(coll, self.ACCOUNT)
        self.emit(sink, "Result", "Final account state", find,
                  f"Balance: ${final['balance']:.2f} (Only Session B's $700 withdrawal applied)")
        sink.put(header("🎉 Write conflict detection prevented a potential $300 overdraft!"))
