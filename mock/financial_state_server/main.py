from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Financial State Server", version="1.0.0")
# Docker mounts the stubs at /financial_state_stub; locally they sit next to this package
DATA_DIR = (
    Path("/financial_state_stub")
    if os.path.exists("/financial_state_stub")
    else Path(__file__).resolve().parents[1] / "financial_state_stub"
)
STUB_PREFIX = "financial_state_"

# Personas that simulate a provider outage
FAILING_USERS = {"user_outage"}


def stub_path(user_id: str) -> Path:
    return DATA_DIR / f"{STUB_PREFIX}{user_id}.json"


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/users")
def list_users():
    users = sorted(p.stem[len(STUB_PREFIX):] for p in DATA_DIR.glob(f"{STUB_PREFIX}*.json"))
    return {"users": users}


@app.get("/users/{user_id}/financial-state")
def get_financial_state(user_id: str):
    if user_id in FAILING_USERS:
        raise HTTPException(status_code=500, detail="provider outage")

    file = stub_path(user_id)
    if not file.exists():
        raise HTTPException(status_code=404, detail="user not found")
    return JSONResponse(content=json.loads(file.read_text()))
