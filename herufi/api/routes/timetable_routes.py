"""
Timetable Routes

GET /timetable/{class_id}/{stream_id} - Time slots of a stream
POST /timetable/{class_id}/{stream_id} - Add a time slot
PUT /timetable/{class_id}/{stream_id}/{slot_id} - Edit a time slot
DELETE /timetable/{class_id}/{stream_id}/{slot_id} - Remove a time slot

One timetables row per (class, stream) holds every slot as a JSONB list.
Slots are not checked for overlaps.
"""

import json
import uuid
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy import text
from typing import List

from herufi.api.lookups import require_stream, require_teacher
from herufi.core.auth import get_current_user, get_current_admin
from herufi.core.logging import get_logger
from herufi.db.postgres import get_db_session, fetch_one
from herufi.schemas.schemas import TimeSlot, TimeSlotCreate, TimetableResponse

router = APIRouter(prefix="/timetable", tags=["Timetable"])
logger = get_logger(__name__)


def load_timetable(db, class_id: str, stream_id: str):
    return fetch_one(
        db,
        "SELECT id, time_slots FROM timetables WHERE class_id = :class_id AND stream_id = :stream_id",
        {"class_id": class_id, "stream_id": stream_id}
    )


def save_slots(db, timetable_id: str, slots: List[dict]) -> None:
    db.execute(
        text("UPDATE timetables SET time_slots = CAST(:slots AS JSONB), updated_at = NOW() WHERE id = :id"),
        {"slots": json.dumps(slots), "id": timetable_id}
    )


def slot_dict(slot_id: str, data: TimeSlotCreate) -> dict:
    return {"id": slot_id, **data.model_dump(mode="json")}


@router.get("/{class_id}/{stream_id}", response_model=List[TimeSlot])
async def get_timetable(class_id: str, stream_id: str, user: dict = Depends(get_current_user)):
    """Slots of a stream's timetable, or an empty list if none exists yet."""
    if not user["school_id"]:
        raise HTTPException(status_code=400, detail="No school associated with your account")

    with get_db_session() as db:
        require_stream(db, stream_id, user["school_id"], class_id=class_id)
        timetable = load_timetable(db, class_id, stream_id)

    if not timetable:
        return []
    return [TimeSlot(**slot) for slot in timetable["time_slots"] or []]


@router.post("/{class_id}/{stream_id}", response_model=TimetableResponse)
async def add_time_slot(
    class_id: str,
    stream_id: str,
    data: TimeSlotCreate,
    response: Response,
    admin: dict = Depends(get_current_admin)
):
    """
    Append a time slot.

    Updates the existing timetable ("Slot added", 200) or creates it
    ("Timetable created", 201). Returns the full slot list.
    """
    new_slot = slot_dict(str(uuid.uuid4()), data)

    with get_db_session() as db:
        require_stream(db, stream_id, admin["school_id"], class_id=class_id)
        if data.teacher_id:
            require_teacher(db, data.teacher_id, admin["school_id"])

        timetable = load_timetable(db, class_id, stream_id)
        if timetable:
            slots = list(timetable["time_slots"] or []) + [new_slot]
            save_slots(db, timetable["id"], slots)
            message = "Slot added"
        else:
            slots = [new_slot]
            db.execute(
                text("""
                    INSERT INTO timetables (class_id, stream_id, time_slots)
                    VALUES (:class_id, :stream_id, CAST(:slots AS JSONB))
                """),
                {"class_id": class_id, "stream_id": stream_id, "slots": json.dumps(slots)}
            )
            message = "Timetable created"
            response.status_code = 201

    logger.info("time_slot_added", class_id=class_id, stream_id=stream_id, slot_id=new_slot["id"])
    return TimetableResponse(message=message, slots=slots)


@router.put("/{class_id}/{stream_id}/{slot_id}", response_model=TimetableResponse)
async def update_time_slot(
    class_id: str,
    stream_id: str,
    slot_id: str,
    data: TimeSlotCreate,
    admin: dict = Depends(get_current_admin)
):
    with get_db_session() as db:
        require_stream(db, stream_id, admin["school_id"], class_id=class_id)
        if data.teacher_id:
            require_teacher(db, data.teacher_id, admin["school_id"])

        timetable = load_timetable(db, class_id, stream_id)
        slots = list(timetable["time_slots"] or []) if timetable else []
        index = next((i for i, s in enumerate(slots) if s.get("id") == slot_id), None)
        if index is None:
            raise HTTPException(status_code=404, detail="Time slot not found")

        slots[index] = slot_dict(slot_id, data)
        save_slots(db, timetable["id"], slots)

    return TimetableResponse(message="Slot updated", slots=slots)


@router.delete("/{class_id}/{stream_id}/{slot_id}", response_model=TimetableResponse)
async def delete_time_slot(
    class_id: str,
    stream_id: str,
    slot_id: str,
    admin: dict = Depends(get_current_admin)
):
    with get_db_session() as db:
        require_stream(db, stream_id, admin["school_id"], class_id=class_id)
        timetable = load_timetable(db, class_id, stream_id)
        slots = list(timetable["time_slots"] or []) if timetable else []
        remaining = [s for s in slots if s.get("id") != slot_id]
        if len(remaining) == len(slots):
            raise HTTPException(status_code=404, detail="Time slot not found")

        save_slots(db, timetable["id"], remaining)

    return TimetableResponse(message="Slot removed", slots=remaining)
