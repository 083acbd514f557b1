from itertools import count
from typing import Any, Dict, List

from fastapi import Body, FastAPI, HTTPException, Query

app = FastAPI(title="Mock Finance Backend", version="1.0.0")

RESOURCES = ("transactions", "budgets")
# In-memory tables, lost on restart
TABLES: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in RESOURCES}
_ids = count(1)
_created = count(1)


def _table(resource: str) -> Dict[str, Dict[str, Any]]:
    if resource not in TABLES:
        raise HTTPException(status_code=404, detail="unknown resource")
    return TABLES[resource]


@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/{resource}")
def list_rows(resource: str, offset: int = Query(0, ge=0), limit: int = Query(100, ge=1), order: str = "created_desc"):
    rows: List[Dict[str, Any]] = sorted(_table(resource).values(), key=lambda r: r["_seq"], reverse=order == "created_desc")
    page = rows[offset:offset + limit]
    return {"data": [{k: v for k, v in row.items() if k != "_seq"} for row in page]}

@app.post("/{resource}", status_code=201)
def create_row(resource: str, row: Dict[str, Any] = Body(...)):
    table = _table(resource)
    remote_id = f"{resource[:3]}_{next(_ids)}"
    table[remote_id] = {**row, "id": remote_id, "_seq": next(_created)}
    return {"data": {"id": remote_id}}

@app.put("/{resource}/{remote_id}")
def update_row(resource: str, remote_id: str, row: Dict[str, Any] = Body(...)):
    table = _table(resource)
    if remote_id not in table:
        raise HTTPException(status_code=404, detail="record not found")
    table[remote_id] = {**table[remote_id], **row, "id": remote_id}
    return {"data": {"id": remote_id}}

@app.delete("/{resource}/{remote_id}")
def delete_row(resource: str, remote_id: str):
    if _table(resource).pop(remote_id, None) is None:
        raise HTTPException(status_code=404, detail="record not found")
    return {"data": {"id": remote_id}}
