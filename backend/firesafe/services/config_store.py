import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session

from firesafe.models.estimate import (
    SCHEMA_VERSION,
    Configuration,
    Equipment,
    EquipmentCategory,
    Rules,
)
from firesafe.models.records import ConfigRecord
from firesafe.services.defaults import DEFAULT_CONFIG, default_config

logger = logging.getLogger(__name__)

CONFIG_KEY = "firesafe_dynamic_config"

# id/name markers used by catalogs saved before entries carried a category
_LEGACY_MARKERS = (
    (EquipmentCategory.SMOKE, ("smoke",), ("khói", "smoke")),
    (EquipmentCategory.HEAT, ("heat",), ("nhiệt", "heat")),
    (EquipmentCategory.CABINET, ("cabinet", "combination"), ("tủ tổ hợp", "chuông đèn", "combination")),
    (EquipmentCategory.PANEL, ("panel",), ("tủ trung tâm", "điều khiển", "control panel")),
    (EquipmentCategory.BELL, ("bell",), ("chuông báo", "bell")),
)
_CABLE_MARKERS = ("cable", "cáp")
_CATEGORY_VALUES = {c.value for c in EquipmentCategory}


class ConfigError(Exception):
    """Raised for catalog edits that cannot be applied."""


def infer_category(entry: Dict[str, Any]) -> EquipmentCategory:
    eq_id = str(entry.get("id") or "").lower()
    name = str(entry.get("name") or "").lower()
    for category, id_markers, name_markers in _LEGACY_MARKERS:
        if category is EquipmentCategory.HEAT and any(m in eq_id or m in name for m in _CABLE_MARKERS):
            continue
        if any(m in eq_id for m in id_markers) or any(m in name for m in name_markers):
            return category
    return EquipmentCategory.OTHER


def migrate_config(raw: Any) -> Configuration:
    """Bring a stored or client-supplied configuration up to the current schema.

    Missing sections come from the defaults, entries without a category are
    classified once from their id and name, and rule values are sanitized by
    the rule models. Raises ValueError (pydantic's ValidationError included)
    when the result still does not validate.
    """
    if not isinstance(raw, dict):
        raise ValueError("configuration must be a JSON object")

    defaults = DEFAULT_CONFIG.model_dump(by_alias=True, mode="json")

    equipments = raw.get("equipments")
    if not isinstance(equipments, list):
        if equipments is not None:
            logger.warning("Stored equipments is not a list, using the default catalog")
        equipments = defaults["equipments"]

    migrated_equipments = []
    for entry in equipments:
        if not isinstance(entry, dict):
            logger.warning("Skipping malformed equipment entry: %r", entry)
            continue
        entry = dict(entry)
        if entry.get("category") not in _CATEGORY_VALUES:
            entry["category"] = infer_category(entry).value
            logger.info("Classified legacy equipment %s as %s", entry.get("id"), entry["category"])
        migrated_equipments.append(entry)

    rules = raw.get("rules")
    company_info = raw.get("companyInfo", raw.get("company_info"))

    return Configuration.model_validate({
        "schemaVersion": SCHEMA_VERSION,
        "equipments": migrated_equipments,
        "rules": rules if isinstance(rules, dict) else {},
        "companyInfo": company_info if isinstance(company_info, dict) else defaults["companyInfo"],
        "updatedAt": raw.get("updatedAt", raw.get("updated_at")),
    })


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConfigStore:
    """Persists the single editable configuration under a fixed key."""

    def __init__(self, session: Session, key: str = CONFIG_KEY):
        self.session = session
        self.key = key

    def load(self) -> Configuration:
        record = self.session.get(ConfigRecord, self.key)
        if record is None:
            return default_config()
        try:
            return migrate_config(json.loads(record.payload))
        except ValueError as e:
            logger.warning("Stored configuration %s is unusable, falling back to defaults: %s", self.key, e)
            return default_config()

    def save(self, config: Configuration) -> Configuration:
        stamped = config.model_copy(update={"updated_at": _now(), "schema_version": SCHEMA_VERSION})
        payload = stamped.model_dump_json(by_alias=True)

        record = self.session.get(ConfigRecord, self.key)
        if record is None:
            record = ConfigRecord(key=self.key, payload=payload)
        else:
            record.payload = payload
            record.updated_at = datetime.now(timezone.utc)
        self.session.add(record)
        self.session.commit()
        logger.info("Saved configuration %s (%d equipments)", self.key, len(stamped.equipments))
        return stamped

    def reset(self) -> Configuration:
        logger.info("Resetting configuration %s to defaults", self.key)
        return self.save(default_config())

    def add_equipment(self, equipment: Equipment) -> Configuration:
        config = self.load()
        if config.get_equipment(equipment.id) is not None:
            raise ConfigError(f"equipment id already exists: {equipment.id}")
        return self.save(config.model_copy(update={"equipments": config.equipments + (equipment,)}))

    def update_equipment(self, equipment_id: str, changes: Dict[str, Any]) -> Configuration:
        config = self.load()
        current = config.get_equipment(equipment_id)
        if current is None:
            raise ConfigError(f"unknown equipment id: {equipment_id}")
        changes = {k: v for k, v in changes.items() if k != "id"}
        updated = Equipment.model_validate({**current.model_dump(), **changes})
        equipments = tuple(updated if eq.id == equipment_id else eq for eq in config.equipments)
        return self.save(config.model_copy(update={"equipments": equipments}))

    def remove_equipment(self, equipment_id: str) -> Configuration:
        config = self.load()
        if config.get_equipment(equipment_id) is None:
            raise ConfigError(f"unknown equipment id: {equipment_id}")
        equipments = tuple(eq for eq in config.equipments if eq.id != equipment_id)
        return self.save(config.model_copy(update={"equipments": equipments}))

    def update_rules(self, rules: Rules) -> Configuration:
        config = self.load()
        return self.save(config.model_copy(update={"rules": rules}))


def new_equipment_id(prefix: str = "custom") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def optional_config(raw: Optional[Dict[str, Any]], store: ConfigStore) -> Configuration:
    """Use the configuration sent with a request, or the stored one."""
    if raw is None:
        return store.load()
    return migrate_config(raw)
