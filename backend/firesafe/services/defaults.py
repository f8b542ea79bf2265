from typing import Any, Dict, List

from firesafe.models.estimate import (
    BuildingType,
    CalcMethod,
    CompanyInfo,
    Configuration,
    Equipment,
    EquipmentCategory,
    PackageType,
    Rules,
)

# Area served by one unit for per_area items on residential buildings (m2)
RESIDENTIAL_AREA_PER_UNIT = 50.0

DEFAULT_CONFIG = Configuration(
    equipments=(
        Equipment(
            id="smoke",
            name="Smoke detector",
            price=650000,
            description="Early smoke detection in bedrooms and living rooms.",
            icon="💨",
            is_default=True,
            category=EquipmentCategory.SMOKE,
            calc_method=CalcMethod(type="per_room"),
        ),
        Equipment(
            id="heat",
            name="Heat detector",
            price=650000,
            description="For kitchens and altar rooms, where smoke detectors raise false alarms.",
            icon="🔥",
            is_default=True,
            category=EquipmentCategory.HEAT,
            calc_method=CalcMethod(type="per_kitchen_altar"),
        ),
        Equipment(
            id="combination",
            name="Bell and strobe combination cabinet",
            price=1890000,
            description="Floor-level audible and visual alarm with manual call point.",
            icon="🔔",
            is_default=True,
            category=EquipmentCategory.CABINET,
            calc_method=CalcMethod(type="per_floor"),
        ),
        Equipment(
            id="panel",
            name="Fire alarm control panel",
            price=4650000,
            description="Central control unit for the whole building's alarm system.",
            icon="🧠",
            is_default=True,
            category=EquipmentCategory.PANEL,
            calc_method=CalcMethod(type="per_building"),
        ),
        Equipment(
            id="bell",
            name="Fire alarm bell",
            price=320000,
            description="Loud corridor bell.",
            icon="🔊",
            is_default=True,
            category=EquipmentCategory.BELL,
            calc_method=CalcMethod(type="per_floor_bell"),
        ),
    ),
    rules=Rules(),
    company_info=CompanyInfo(
        name="FireSafe Pro",
        logo_url="/favicon.svg",
    ),
)

BUILDING_TYPE_INFO: Dict[BuildingType, Dict[str, Any]] = {
    BuildingType.RESIDENTIAL: {
        "label": "Residential",
        "icon": "🏠",
        "description": "Town houses, villas and apartments.",
        "technical_notes": [
            "One smoke detector per room, or at most 35 m2 per detector.",
            "Kitchens and altar rooms use heat detectors to avoid false alarms.",
            "The smart package can forward alarms to a phone.",
        ],
        "applicable_packages": [PackageType.INDEPENDENT, PackageType.LOCAL, PackageType.SMART],
    },
    BuildingType.OFFICE: {
        "label": "Office",
        "icon": "🏢",
        "description": "Office buildings. Not estimated yet; quote on site.",
        "technical_notes": [],
        "applicable_packages": [],
    },
    BuildingType.WAREHOUSE: {
        "label": "Warehouse / factory",
        "icon": "🏭",
        "description": "Production halls, warehouses and plants.",
        "technical_notes": [
            "Automatic detectors are sized by floor area per detector.",
            "Bell and strobe cabinets are sized by floor area per cabinet.",
            "Flammable or chemical storage requires linear heat-sensing cable.",
            "Split the floor into fire zones, each with its own detectors.",
            "A central panel with a backup power supply (UPS) is mandatory.",
        ],
        "applicable_packages": [PackageType.SMART],
    },
}

PACKAGE_INFO: Dict[PackageType, Dict[str, str]] = {
    PackageType.INDEPENDENT: {
        "label": "Independent package",
        "description": "Stand-alone point detectors only, no wiring.",
    },
    PackageType.LOCAL: {
        "label": "Local package",
        "description": "Detectors plus floor-level alarm cabinets.",
    },
    PackageType.SMART: {
        "label": "Smart package",
        "description": "Full system with a central control panel.",
    },
}


def default_config() -> Configuration:
    return DEFAULT_CONFIG.model_copy(deep=True)


def applicable_packages(building_type: BuildingType) -> List[PackageType]:
    return list(BUILDING_TYPE_INFO[BuildingType(building_type)]["applicable_packages"])
