import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlmodel import Session, select

from firesafe.db.session import get_session
from firesafe.models.records import SavedProjectRecord
from firesafe.api.estimate import EstimateRequest, run_estimate

logger = logging.getLogger(__name__)
router = APIRouter()


class ProjectCreate(EstimateRequest):
    name: str = Field(min_length=1, max_length=200)


def _to_dict(record: SavedProjectRecord) -> dict:
    return {
        "id": record.id,
        "name": record.name,
        "buildingType": record.building_type,
        "packageType": record.package_type,
        "userInput": json.loads(record.user_input),
        "estimation": json.loads(record.estimation),
        "totalCost": record.total_cost,
        "createdAt": record.created_at.isoformat(),
    }


@router.post("/projects", status_code=201)
def save_project(req: ProjectCreate, session: Session = Depends(get_session)):
    """Estimate and store the result as a snapshot; later catalog edits do not touch it."""
    result, rejected = run_estimate(req, session, "project")
    if rejected is not None:
        return rejected

    record = SavedProjectRecord(
        name=req.name,
        building_type=req.building_type.value,
        package_type=req.package_type.value,
        user_input=req.user_input().model_dump_json(by_alias=True),
        estimation=result.model_dump_json(by_alias=True),
        total_cost=result.total_cost,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info("Saved project id=%s name=%s total=%s", record.id, record.name, record.total_cost)
    return _to_dict(record)


@router.get("/projects")
def list_projects(session: Session = Depends(get_session)):
    rows = session.exec(
        select(SavedProjectRecord).order_by(SavedProjectRecord.created_at.desc(), SavedProjectRecord.id.desc())
    ).all()
    return [_to_dict(r) for r in rows]


@router.get("/projects/{project_id}")
def get_project(project_id: int, session: Session = Depends(get_session)):
    record = session.get(SavedProjectRecord, project_id)
    if record is None:
        raise HTTPException(status_code=404, detail="project not found")
    return _to_dict(record)


@router.delete("/projects/{project_id}")
def delete_project(project_id: int, session: Session = Depends(get_session)):
    record = session.get(SavedProjectRecord, project_id)
    if record is None:
        raise HTTPException(status_code=404, detail="project not found")
    session.delete(record)
    session.commit()
    logger.info("Deleted project id=%s", project_id)
    return {"ok": True, "id": project_id}
