from __future__ import annotations
from contextlib import contextmanager
from typing import Optional, Dict, Any, List
import json, sqlite3, os
from lockbox_core.storage.provider import StorageProvider
from lockbox_core.storage.models import (
    CapabilityGrant,
    CustodyKey,
    LockParams,
    SubscriptionRecord,
)
from lockbox_core.utils import now_ts


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/lockbox_state.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._depth = 0

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        # price/balance are TEXT: base-unit amounts overflow INTEGER
        c.execute("""CREATE TABLE IF NOT EXISTS lock_params(
            id INTEGER PRIMARY KEY CHECK (id = 1),
            name TEXT NOT NULL,
            owner TEXT NOT NULL,
            resource_id TEXT NOT NULL,
            price TEXT NOT NULL,
            duration INTEGER NOT NULL,
            balance TEXT NOT NULL DEFAULT '0'
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS subscriptions(
            identity TEXT PRIMARY KEY,
            expiration_ts INTEGER NOT NULL,
            created_at TEXT,
            updated_at TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS custody_key(
            id INTEGER PRIMARY KEY CHECK (id = 1),
            owner TEXT NOT NULL,
            wrapped_key TEXT,
            input_proof TEXT,
            is_set INTEGER NOT NULL DEFAULT 0,
            set_at TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS capability_grants(
            identity TEXT PRIMARY KEY,
            granted_at TEXT NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")

        self.db.commit()

    def _commit(self) -> None:
        # deferred to the outermost transaction
        if not self._depth:
            self.db.commit()

    @contextmanager
    def transaction(self):
        self._depth += 1
        depth = self._depth
        if depth == 1:
            if not self.db.in_transaction:
                self.db.execute("BEGIN")
        else:
            self.db.execute(f"SAVEPOINT sp_{depth}")
        try:
            yield
        except BaseException:
            if depth == 1:
                self.db.rollback()
            else:
                self.db.execute(f"ROLLBACK TO SAVEPOINT sp_{depth}")
                self.db.execute(f"RELEASE SAVEPOINT sp_{depth}")
            raise
        else:
            if depth == 1:
                self.db.commit()
            else:
                self.db.execute(f"RELEASE SAVEPOINT sp_{depth}")
        finally:
            self._depth -= 1

    # --- params / balance ---

    def get_params(self) -> Optional[LockParams]:
        cur = self.db.execute("SELECT name, owner, resource_id, price, duration FROM lock_params WHERE id = 1")
        row = cur.fetchone()
        if not row:
            return None
        name, owner, resource_id, price, duration = row
        return LockParams(name=name, owner=owner, resource_id=resource_id, price=int(price), duration=int(duration))

    def put_params(self, params: LockParams) -> None:
        self.db.execute(
            "INSERT INTO lock_params(id, name, owner, resource_id, price, duration) VALUES(1,?,?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, owner=excluded.owner, "
            "resource_id=excluded.resource_id, price=excluded.price, duration=excluded.duration",
            (params.name, params.owner, params.resource_id, str(params.price), params.duration)
        )
        self._commit()

    def get_balance(self) -> int:
        cur = self.db.execute("SELECT balance FROM lock_params WHERE id = 1")
        row = cur.fetchone()
        return int(row[0]) if row else 0

    def set_balance(self, amount: int) -> None:
        self.db.execute("UPDATE lock_params SET balance=? WHERE id = 1", (str(amount),))
        self._commit()

    # --- subscriptions ---

    def get_subscription(self, identity: str) -> Optional[SubscriptionRecord]:
        cur = self.db.execute(
            "SELECT identity, expiration_ts, created_at, updated_at FROM subscriptions WHERE identity=?",
            (identity,)
        )
        row = cur.fetchone()
        if not row: return None
        return SubscriptionRecord(*row)

    def upsert_subscription(self, rec: SubscriptionRecord) -> None:
        self.db.execute(
            "INSERT INTO subscriptions(identity, expiration_ts, created_at, updated_at) VALUES(?,?,?,?) "
            "ON CONFLICT(identity) DO UPDATE SET expiration_ts=excluded.expiration_ts, "
            "updated_at=excluded.updated_at",
            (rec.identity, rec.expiration_timestamp, rec.created_at, rec.updated_at)
        )
        self._commit()

    def list_subscriptions(self) -> List[SubscriptionRecord]:
        cur = self.db.execute("SELECT identity, expiration_ts, created_at, updated_at FROM subscriptions")
        return [SubscriptionRecord(*r) for r in cur.fetchall()]

    # --- custody key ---

    def get_custody_key(self) -> Optional[CustodyKey]:
        cur = self.db.execute(
            "SELECT owner, wrapped_key, input_proof, is_set, set_at FROM custody_key WHERE id = 1"
        )
        row = cur.fetchone()
        if not row:
            return None
        owner, wrapped_key, input_proof, is_set, set_at = row
        return CustodyKey(owner=owner, wrapped_key=wrapped_key, input_proof=input_proof,
                          is_set=bool(is_set), set_at=set_at)

    def put_custody_key(self, key: CustodyKey) -> None:
        self.db.execute(
            "INSERT INTO custody_key(id, owner, wrapped_key, input_proof, is_set, set_at) VALUES(1,?,?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET owner=excluded.owner, wrapped_key=excluded.wrapped_key, "
            "input_proof=excluded.input_proof, is_set=excluded.is_set, set_at=excluded.set_at",
            (key.owner, key.wrapped_key, key.input_proof, int(key.is_set), key.set_at)
        )
        self._commit()

    # --- capability grants ---

    def add_grant(self, identity: str) -> bool:
        cur = self.db.execute(
            "INSERT OR IGNORE INTO capability_grants(identity, granted_at) VALUES(?,?)",
            (identity, now_ts())
        )
        self._commit()
        return cur.rowcount == 1

    def has_grant(self, identity: str) -> bool:
        cur = self.db.execute("SELECT 1 FROM capability_grants WHERE identity=?", (identity,))
        return cur.fetchone() is not None

    def list_grants(self) -> List[CapabilityGrant]:
        cur = self.db.execute("SELECT identity, granted_at FROM capability_grants")
        return [CapabilityGrant(*r) for r in cur.fetchall()]

    # --- audit ---

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.db.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                        (now_ts(), event_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)))
        self._commit()

    def list_events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if event_type:
            cur = self.db.execute("SELECT ts, event_type, payload FROM audit WHERE event_type=? ORDER BY rowid",
                                  (event_type,))
        else:
            cur = self.db.execute("SELECT ts, event_type, payload FROM audit ORDER BY rowid")
        return [
            {"ts": ts, "event_type": et, "payload": json.loads(payload)}
            for ts, et, payload in cur.fetchall()
        ]

    def close(self):
        self.db.close()
