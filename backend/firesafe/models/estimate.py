import logging
import math
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


class BuildingType(str, Enum):
    RESIDENTIAL = "residential"
    OFFICE = "office"
    WAREHOUSE = "warehouse"


class PackageType(str, Enum):
    INDEPENDENT = "independent"
    LOCAL = "local"
    SMART = "smart"


class StorageType(str, Enum):
    GENERAL = "general"
    FLAMMABLE = "flammable"
    CHEMICAL = "chemical"


class OfficeDensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EquipmentCategory(str, Enum):
    SMOKE = "smoke"
    HEAT = "heat"
    CABINET = "cabinet"
    PANEL = "panel"
    BELL = "bell"
    OTHER = "other"


class CalcMethodType(str, Enum):
    PER_ROOM = "per_room"
    PER_KITCHEN_ALTAR = "per_kitchen_altar"
    PER_FLOOR = "per_floor"
    PER_AREA = "per_area"
    PER_FLOOR_BELL = "per_floor_bell"
    PER_LINEAR_CABLE = "per_linear_cable"
    PER_BUILDING = "per_building"


def coerce_non_negative(value: Any) -> float:
    """Coerce raw form input to a finite number >= 0; anything unusable becomes 0."""
    if isinstance(value, str):
        value = value.strip() or 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _positive_or_default(model: type, value: Any, info: ValidationInfo) -> Any:
    default = model.model_fields[info.field_name].default
    number = coerce_non_negative(value) if value is not None else 0.0
    if number <= 0:
        logger.warning("Rule %s=%r is not a positive number, using default %s", info.field_name, value, default)
        return default
    return number


class ResidentialRules(CamelModel):
    cabinet_per_floors: float = 2
    smoke_per_room: float = 1
    heat_per_kitchen_altar: float = 1

    @field_validator("*", mode="before")
    @classmethod
    def _sanitize(cls, value, info: ValidationInfo):
        return _positive_or_default(cls, value, info)


class CableRatios(CamelModel):
    """Metres of linear heat-sensing cable per m2 of floor, by stored-goods hazard class."""

    general: float = 0.5
    flammable: float = 1.0
    chemical: float = 1.5

    @field_validator("*", mode="before")
    @classmethod
    def _sanitize(cls, value, info: ValidationInfo):
        return _positive_or_default(cls, value, info)

    def for_storage(self, storage_type: StorageType) -> float:
        return getattr(self, StorageType(storage_type).value)


class WarehouseRules(CamelModel):
    smoke_detector_area: float = 35
    cabinet_area: float = 200
    cable_ratios: CableRatios = Field(default_factory=CableRatios)

    @field_validator("smoke_detector_area", "cabinet_area", mode="before")
    @classmethod
    def _sanitize(cls, value, info: ValidationInfo):
        return _positive_or_default(cls, value, info)

    @field_validator("cable_ratios", mode="before")
    @classmethod
    def _missing_ratios(cls, value):
        return {} if value is None else value


class Rules(CamelModel):
    residential: ResidentialRules = Field(default_factory=ResidentialRules)
    warehouse: WarehouseRules = Field(default_factory=WarehouseRules)

    @field_validator("residential", "warehouse", mode="before")
    @classmethod
    def _missing_table(cls, value, info: ValidationInfo):
        if value is None:
            logger.warning("Rule table %s missing, using defaults", info.field_name)
            return {}
        return value


class CalcMethod(CamelModel):
    """Quantity formula tag of a catalog entry.

    ``type`` is kept as a plain string so entries written with a tag this
    version does not know still load; the engine resolves them to zero.
    ``value`` is the area per unit for ``per_area``, the cable ratio override
    for ``per_linear_cable`` and a unit multiplier for the count-based tags.
    """

    type: str
    value: Optional[float] = Field(default=None, allow_inf_nan=False)

    def known_type(self) -> Optional[CalcMethodType]:
        try:
            return CalcMethodType(self.type)
        except ValueError:
            return None


class Equipment(CamelModel):
    id: str = Field(min_length=1)
    name: str
    price: float = Field(ge=0, allow_inf_nan=False)
    icon: str = ""
    description: str = ""
    is_default: bool = False
    category: EquipmentCategory = EquipmentCategory.OTHER
    calc_method: Optional[CalcMethod] = None


class CompanyInfo(CamelModel):
    name: str = ""
    logo_url: str = ""
    phone: str = ""
    address: str = ""


class Configuration(CamelModel):
    schema_version: int = SCHEMA_VERSION
    equipments: Tuple[Equipment, ...] = ()
    rules: Rules = Field(default_factory=Rules)
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    updated_at: Optional[str] = None

    @field_validator("equipments")
    @classmethod
    def _unique_ids(cls, equipments):
        seen = set()
        for eq in equipments:
            if eq.id in seen:
                raise ValueError(f"duplicate equipment id: {eq.id}")
            seen.add(eq.id)
        return equipments

    def get_equipment(self, equipment_id: str) -> Optional[Equipment]:
        for eq in self.equipments:
            if eq.id == equipment_id:
                return eq
        return None


class UserInput(CamelModel):
    building_type: BuildingType = BuildingType.RESIDENTIAL
    floors: int = 0
    rooms: int = 0
    kitchen_altar: int = 0
    total_area: float = 0
    ceiling_height: float = 6
    office_density: OfficeDensity = OfficeDensity.MEDIUM
    storage_type: StorageType = StorageType.GENERAL

    @field_validator("floors", "rooms", "kitchen_altar", mode="before")
    @classmethod
    def _count(cls, value):
        return int(coerce_non_negative(value))

    @field_validator("total_area", "ceiling_height", mode="before")
    @classmethod
    def _measure(cls, value):
        return coerce_non_negative(value)


class LineItem(CamelModel):
    id: str
    name: str
    quantity: int
    unit_price: float
    total_price: float
    note: str
    icon: str = ""


class EstimationResult(CamelModel):
    total_cost: float = 0
    equipment_list: Tuple[LineItem, ...] = ()
