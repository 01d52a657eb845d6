# device_sim/app.py
"""Simulated remote device served over HTTP.

The simulator accepts one payload per ``POST /units`` call and injects the
same classes of failure a real device shows: it can report "not ready" on the
health endpoint, refuse work with 409, or fail after a payload was already
taken (5xx with ``sent=true``).
"""
import os
import random
import threading
import datetime
from datetime import timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Header
from pydantic import BaseModel, Field

API_KEY = os.getenv("DEVICE_SIM_API_KEY", "")

STATUS_MESSAGES = (
    "Out of media",
    "Cover open",
    "Head too hot",
    "Media jam",
    "Ribbon out",
    "Paused",
    "Buffer full",
    "Calibration required",
    "Low battery",
    "Hardware fault",
)


def _env_rate(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1 (got {raw!r})")
    return value


def _env_seed() -> Optional[int]:
    raw = os.getenv("DEVICE_SIM_SEED")
    if raw is None or not raw.strip():
        return None
    return int(raw)


def utcnow_iso() -> str:
    return datetime.datetime.now(timezone.utc).isoformat(timespec="seconds")


# ---------- Modelle ----------
class UnitRequest(BaseModel):
    payload: str = Field(..., min_length=1, description="Text processed as one unit")


class UnitRecord(BaseModel):
    index: int
    payload: str
    accepted_at: str


class FaultConfig(BaseModel):
    not_ready_rate: float = Field(0.0, ge=0.0, le=1.0)
    send_fail_rate: float = Field(0.0, ge=0.0, le=1.0)
    forced_status: Optional[str] = Field(
        None, description="When set, the device reports this status and refuses work"
    )
    seed: Optional[int] = None


class FaultUpdate(BaseModel):
    not_ready_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    send_fail_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    forced_status: Optional[str] = None
    clear_forced_status: bool = False
    seed: Optional[int] = None
    clear_units: bool = False


# ---------- Geraete-Zustand ----------
STATE_LOCK = threading.Lock()
FAULTS = FaultConfig(
    not_ready_rate=_env_rate("DEVICE_SIM_NOT_READY_RATE", 0.0),
    send_fail_rate=_env_rate("DEVICE_SIM_SEND_FAIL_RATE", 0.0),
    seed=_env_seed(),
)
RNG = random.Random(FAULTS.seed)
UNITS: List[UnitRecord] = []


def reset_state(faults: Optional[FaultConfig] = None) -> None:
    """Restore the simulator to a clean device with the given fault profile."""
    global FAULTS, RNG
    with STATE_LOCK:
        FAULTS = faults or FaultConfig()
        RNG = random.Random(FAULTS.seed)
        UNITS.clear()


def _readiness_locked() -> Dict[str, object]:
    if FAULTS.forced_status:
        return {"ok": False, "status": FAULTS.forced_status}
    if FAULTS.not_ready_rate and RNG.random() < FAULTS.not_ready_rate:
        return {"ok": False, "status": RNG.choice(STATUS_MESSAGES)}
    return {"ok": True, "status": "Ready"}


app = FastAPI(title="Bulk Device Simulator", version="0.1.0")


# ---------- Auth Helper ----------
def require_key(x_api_key: Optional[str]):
    if API_KEY and x_api_key != API_KEY:
        raise HTTPException(401, "Unauthorized")


# ---------- Endpunkte ----------
@app.get("/health")
def health(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    with STATE_LOCK:
        status = _readiness_locked()
        status["units"] = len(UNITS)
    return status


@app.post("/units")
def submit_unit(req: UnitRequest, x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    with STATE_LOCK:
        if FAULTS.forced_status:
            raise HTTPException(409, {"message": FAULTS.forced_status, "sent": False})
        record = UnitRecord(index=len(UNITS) + 1, payload=req.payload, accepted_at=utcnow_iso())
        UNITS.append(record)
        if FAULTS.send_fail_rate and RNG.random() < FAULTS.send_fail_rate:
            raise HTTPException(
                500,
                {"message": f"Device failed while processing unit {record.index}", "sent": True},
            )
    return {"ok": True, "index": record.index}


@app.get("/units")
def list_units(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    with STATE_LOCK:
        return [unit.model_dump() for unit in UNITS]


@app.post("/admin/faults")
def update_faults(update: FaultUpdate, x_api_key: Optional[str] = Header(None)):
    """Change the fault profile at runtime; omitted fields keep their value."""
    global FAULTS, RNG
    require_key(x_api_key)
    with STATE_LOCK:
        data = FAULTS.model_dump()
        for field in ("not_ready_rate", "send_fail_rate", "forced_status", "seed"):
            value = getattr(update, field)
            if value is not None:
                data[field] = value
        if update.clear_forced_status:
            data["forced_status"] = None
        FAULTS = FaultConfig(**data)
        if update.seed is not None:
            RNG = random.Random(update.seed)
        if update.clear_units:
            UNITS.clear()
        return FAULTS.model_dump()
