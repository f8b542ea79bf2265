from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import Field
from sqlmodel import Session

from firesafe.db.session import get_session
from firesafe.models.estimate import CalcMethod, CamelModel, Configuration, Equipment, EquipmentCategory, Rules
from firesafe.services.config_store import ConfigError, ConfigStore, migrate_config, new_equipment_id

logger = logging.getLogger(__name__)
router = APIRouter()


class EquipmentCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    icon: str = "📦"
    description: str = ""
    category: EquipmentCategory = EquipmentCategory.OTHER
    calc_method: CalcMethod = CalcMethod(type="per_floor")


class EquipmentUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    icon: Optional[str] = None
    description: Optional[str] = None
    category: Optional[EquipmentCategory] = None
    calc_method: Optional[CalcMethod] = None


def _dump(config: Configuration) -> Dict[str, Any]:
    return config.model_dump(by_alias=True, mode="json")


@router.get("/config")
def get_config(session: Session = Depends(get_session)):
    return _dump(ConfigStore(session).load())


@router.put("/config")
def replace_config(payload: Dict[str, Any] = Body(...), session: Session = Depends(get_session)):
    try:
        config = migrate_config(payload)
    except ValueError as e:
        logger.warning("Rejected configuration update: %s", e)
        raise HTTPException(status_code=422, detail="Invalid configuration")
    return _dump(ConfigStore(session).save(config))


@router.post("/config/reset")
def reset_config(session: Session = Depends(get_session)):
    return _dump(ConfigStore(session).reset())


@router.post("/config/equipments", status_code=201)
def add_equipment(body: EquipmentCreate, session: Session = Depends(get_session)):
    fields = body.model_dump()
    fields["id"] = fields["id"] or new_equipment_id()
    equipment = Equipment(**fields, is_default=False)
    try:
        config = ConfigStore(session).add_equipment(equipment)
    except ConfigError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("Added equipment id=%s category=%s", equipment.id, equipment.category.value)
    return _dump(config)


@router.patch("/config/equipments/{equipment_id}")
def edit_equipment(equipment_id: str, body: EquipmentUpdate, session: Session = Depends(get_session)):
    try:
        config = ConfigStore(session).update_equipment(equipment_id, body.model_dump(exclude_unset=True))
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        logger.warning("Rejected edit of equipment id=%s: %s", equipment_id, e)
        raise HTTPException(status_code=422, detail="Invalid equipment fields")
    return _dump(config)


@router.delete("/config/equipments/{equipment_id}")
def remove_equipment(equipment_id: str, session: Session = Depends(get_session)):
    try:
        config = ConfigStore(session).remove_equipment(equipment_id)
    except ConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("Removed equipment id=%s", equipment_id)
    return _dump(config)


@router.put("/config/rules")
def replace_rules(rules: Rules, session: Session = Depends(get_session)):
    return _dump(ConfigStore(session).update_rules(rules))
