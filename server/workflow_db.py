"""SQLite storage for workflows.

Each workflow is stored as its JSON document plus the columns the list
endpoint filters and sorts on (status, updated_at).
"""

import os
import sqlite3
from pathlib import Path

from flowcraft.models.workflow import WorkflowGraph, WorkflowStatus


DEFAULT_DB_PATH = Path(__file__).parent / "data" / "flowcraft.db"
WORKFLOW_DB_PATH = Path(os.getenv("WORKFLOW_DB_PATH", str(DEFAULT_DB_PATH)))


def _connect() -> sqlite3.Connection:
    WORKFLOW_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(WORKFLOW_DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists workflows (
                workflow_id text primary key,
                document text not null,
                status text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            "create index if not exists workflows_status on workflows (status, updated_at)"
        )
        conn.commit()


def save_workflow(workflow: WorkflowGraph) -> None:
    """insert or replace a workflow document."""
    with _connect() as conn:
        conn.execute(
            """
            insert into workflows (workflow_id, document, status, updated_at)
            values (?, ?, ?, ?)
            on conflict(workflow_id) do update set
                document = excluded.document,
                status = excluded.status,
                updated_at = excluded.updated_at
            """,
            (
                workflow.id,
                workflow.model_dump_json(),
                workflow.status.value,
                workflow.updated_at,
            ),
        )
        conn.commit()


def load_workflow(workflow_id: str) -> WorkflowGraph | None:
    with _connect() as conn:
        row = conn.execute(
            "select document from workflows where workflow_id = ?",
            (workflow_id,),
        ).fetchone()
    if row is None:
        return None
    return WorkflowGraph.model_validate_json(row["document"])


def list_workflows(status: WorkflowStatus | None = None) -> list[WorkflowGraph]:
    """stored workflows, most recently updated first, optionally of one status."""
    query = "select document from workflows"
    params: tuple = ()
    if status is not None:
        query += " where status = ?"
        params = (status.value,)
    query += " order by updated_at desc"

    with _connect() as conn:
        rows = conn.execute(query, params).fetchall()

    return [WorkflowGraph.model_validate_json(row["document"]) for row in rows]


def delete_workflow(workflow_id: str) -> bool:
    """remove a workflow; False when there was nothing to remove."""
    with _connect() as conn:
        cursor = conn.execute("delete from workflows where workflow_id = ?", (workflow_id,))
        conn.commit()
    return cursor.rowcount > 0
