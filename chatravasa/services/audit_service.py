"""
Operation audit trail
Writes one row per business operation into the logs table, inside the
caller's transaction so the audit row commits or rolls back with the change.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from ..core.database import DatabaseManager


def record_operation(conn, action: str, actor_id: Optional[str], detail: Dict[str, Any],
                     user_id: Optional[str] = None) -> None:
    conn.execute(
        "INSERT INTO logs (user_id, actor_id, action, detail_json) VALUES (?, ?, ?, ?)",
        [user_id, actor_id, action, json.dumps(detail, ensure_ascii=False, default=str)]
    )


def list_operations(db: DatabaseManager, actor_id: Optional[str] = None,
                    actions: Optional[Iterable[str]] = None, limit: int = 50) -> List[Dict[str, Any]]:
    clauses, params = [], []
    if actor_id is not None:
        clauses.append("actor_id = ?")
        params.append(actor_id)
    if actions is not None:
        actions = list(actions)
        clauses.append(f"action IN ({','.join(['?'] * len(actions))})")
        params.extend(actions)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.fetch_dicts(
        f"""
        SELECT log_id, user_id, actor_id, action, detail_json, created_at
        FROM logs {where}
        ORDER BY log_id DESC
        LIMIT ?
        """,
        params + [limit]
    )
    for row in rows:
        row["detail"] = json.loads(row.pop("detail_json") or "{}")
    return rows
