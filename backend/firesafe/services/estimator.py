"""Rule-based fire-alarm equipment estimation.

``estimate`` walks the equipment catalog in order and resolves a quantity for
each entry. Categorised entries (smoke, heat, cabinet, panel, bell) follow the
policy table of the building type and package; ``other`` entries fall back to
their own calculation method. Entries that resolve to zero are left out of the
result.
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from firesafe.models.estimate import (
    BuildingType,
    CalcMethod,
    CalcMethodType,
    Configuration,
    Equipment,
    EquipmentCategory,
    EstimationResult,
    LineItem,
    PackageType,
    ResidentialRules,
    UserInput,
    WarehouseRules,
)
from firesafe.services.defaults import PACKAGE_INFO, RESIDENTIAL_AREA_PER_UNIT

logger = logging.getLogger(__name__)

Resolution = Tuple[int, str]


@dataclass(frozen=True)
class _Context:
    data: UserInput
    package: PackageType
    residential: ResidentialRules
    warehouse: WarehouseRules
    heat_count: int = 0


def _ceil(value: float) -> int:
    if not math.isfinite(value):
        logger.warning("Quantity %s is out of range, counting 0 units", value)
        return 0
    # round first so 3 * 1.1 style float noise does not add a unit
    return max(0, math.ceil(round(value, 6)))


def _divisor(value: Optional[float]) -> float:
    return max(1.0, value or 0.0)


def _fmt(value: float) -> str:
    return "%g" % value


def _scaled(count: float, method: CalcMethod) -> int:
    multiplier = method.value if method.value is not None else 1.0
    return _ceil(count * multiplier)


# --- residential -----------------------------------------------------------

def _residential_smoke_count(ctx: _Context) -> int:
    rooms = ctx.data.rooms
    return _ceil(rooms * ctx.residential.smoke_per_room) if rooms > 0 else 0


def _residential_heat_count(ctx: _Context) -> int:
    kitchen_altar = ctx.data.kitchen_altar
    return _ceil(kitchen_altar * ctx.residential.heat_per_kitchen_altar) if kitchen_altar > 0 else 0


def _res_smoke(ctx: _Context, eq: Equipment) -> Resolution:
    per_room = ctx.residential.smoke_per_room
    return (
        _residential_smoke_count(ctx),
        f"{_fmt(per_room)} per bedroom/living room x {ctx.data.rooms} rooms",
    )


def _res_heat(ctx: _Context, eq: Equipment) -> Resolution:
    per_room = ctx.residential.heat_per_kitchen_altar
    return (
        _residential_heat_count(ctx),
        f"{_fmt(per_room)} per kitchen/altar room x {ctx.data.kitchen_altar} rooms",
    )


def _res_cabinet(ctx: _Context, eq: Equipment) -> Resolution:
    per_floors = _divisor(ctx.residential.cabinet_per_floors)
    quantity = max(1, _ceil(ctx.data.floors / per_floors))
    return quantity, f"1 unit every {_fmt(per_floors)} floors, rounded up ({ctx.data.floors} floors)"


def _res_panel(ctx: _Context, eq: Equipment) -> Resolution:
    return 1, "1 central control panel"


def _not_used(ctx: _Context, eq: Equipment) -> Resolution:
    return 0, f"Not used in the {PACKAGE_INFO[ctx.package]['label']}"


_DETECTORS = {
    EquipmentCategory.SMOKE: _res_smoke,
    EquipmentCategory.HEAT: _res_heat,
}

RESIDENTIAL_POLICY: Dict[PackageType, Dict[EquipmentCategory, Callable[[_Context, Equipment], Resolution]]] = {
    PackageType.INDEPENDENT: {
        **_DETECTORS,
        EquipmentCategory.CABINET: _not_used,
        EquipmentCategory.BELL: _not_used,
        EquipmentCategory.PANEL: _not_used,
    },
    PackageType.LOCAL: {
        **_DETECTORS,
        EquipmentCategory.CABINET: _res_cabinet,
        EquipmentCategory.BELL: _res_cabinet,
        EquipmentCategory.PANEL: _not_used,
    },
    PackageType.SMART: {
        **_DETECTORS,
        EquipmentCategory.CABINET: _res_cabinet,
        EquipmentCategory.BELL: _res_cabinet,
        EquipmentCategory.PANEL: _res_panel,
    },
}


def _res_method_area(ctx: _Context, method: CalcMethod) -> Resolution:
    per_unit = _divisor(method.value if method.value is not None else RESIDENTIAL_AREA_PER_UNIT)
    return _ceil(ctx.data.total_area / per_unit), f"1 unit per {_fmt(per_unit)} m2 of floor area"


RESIDENTIAL_METHODS: Dict[CalcMethodType, Callable[[_Context, CalcMethod], Resolution]] = {
    CalcMethodType.PER_ROOM: lambda ctx, m: (_scaled(_residential_smoke_count(ctx), m), "By room count"),
    CalcMethodType.PER_KITCHEN_ALTAR: lambda ctx, m: (_scaled(_residential_heat_count(ctx), m), "By kitchen/altar rooms"),
    CalcMethodType.PER_FLOOR: lambda ctx, m: (_scaled(ctx.data.floors, m), "By floor count (1 per floor)"),
    CalcMethodType.PER_AREA: _res_method_area,
    CalcMethodType.PER_FLOOR_BELL: lambda ctx, m: (_scaled(ctx.data.floors, m), "By floor count (bells)"),
    CalcMethodType.PER_BUILDING: lambda ctx, m: (_scaled(1, m), "Fixed, 1 per building"),
}


# --- warehouse -------------------------------------------------------------

HEAT_CONTRIBUTIONS: Dict[CalcMethodType, Callable[[UserInput], int]] = {
    CalcMethodType.PER_ROOM: lambda data: data.rooms,
    CalcMethodType.PER_KITCHEN_ALTAR: lambda data: data.kitchen_altar,
    CalcMethodType.PER_FLOOR: lambda data: data.floors,
    CalcMethodType.PER_BUILDING: lambda data: 1,
}


def _heat_contribution(eq: Equipment, data: UserInput) -> int:
    method = eq.calc_method.known_type() if eq.calc_method else None
    counter = HEAT_CONTRIBUTIONS.get(method)
    return max(0, int(counter(data))) if counter else 0


def warehouse_heat_count(config: Configuration, data: UserInput) -> int:
    """Heat detectors the catalog places in a warehouse; these zones need no smoke detector."""
    return sum(
        _heat_contribution(eq, data)
        for eq in config.equipments
        if eq.category is EquipmentCategory.HEAT
    )


def _wh_heat(ctx: _Context, eq: Equipment) -> Resolution:
    quantity = _heat_contribution(eq, ctx.data)
    return quantity, f"Installed per configured method: {quantity} units"


def _wh_smoke(ctx: _Context, eq: Equipment) -> Resolution:
    per_unit = _divisor(ctx.warehouse.smoke_detector_area)
    total = _ceil(ctx.data.total_area / per_unit)
    quantity = max(0, total - ctx.heat_count)
    return quantity, f"Area coverage ({total}) minus heat detectors ({ctx.heat_count})"


def _wh_cabinet(ctx: _Context, eq: Equipment) -> Resolution:
    per_unit = _divisor(ctx.warehouse.cabinet_area)
    quantity = max(1, _ceil(ctx.data.total_area / per_unit))
    return quantity, f"By floor area ({_fmt(ctx.data.total_area)} m2 / {_fmt(per_unit)} m2)"


WAREHOUSE_POLICY: Dict[EquipmentCategory, Callable[[_Context, Equipment], Resolution]] = {
    EquipmentCategory.HEAT: _wh_heat,
    EquipmentCategory.SMOKE: _wh_smoke,
    EquipmentCategory.CABINET: _wh_cabinet,
    EquipmentCategory.BELL: _wh_cabinet,
    EquipmentCategory.PANEL: _res_panel,
}


def _wh_method_detector(ctx: _Context, method: CalcMethod) -> Resolution:
    default_area = ctx.warehouse.smoke_detector_area
    if method.known_type() is CalcMethodType.PER_AREA and method.value is not None:
        per_unit = _divisor(method.value)
        count = max(1, _ceil(ctx.data.total_area / per_unit))
    else:
        per_unit = _divisor(default_area)
        count = _scaled(max(1, _ceil(ctx.data.total_area / per_unit)), method)
    return count, f"1 unit per {_fmt(per_unit)} m2 of floor"


def _wh_method_cabinet(ctx: _Context, method: CalcMethod) -> Resolution:
    per_unit = _divisor(ctx.warehouse.cabinet_area)
    count = _scaled(max(1, _ceil(ctx.data.total_area / per_unit)), method)
    return count, f"1 unit per {_fmt(per_unit)} m2 of warehouse floor"


def _wh_method_cable(ctx: _Context, method: CalcMethod) -> Resolution:
    storage = ctx.data.storage_type
    ratio = method.value if method.value is not None else ctx.warehouse.cable_ratios.for_storage(storage)
    metres = _ceil(ctx.data.total_area * ratio)
    return metres, f"{_fmt(ratio)} m of cable per m2 for {storage.value} goods ({_fmt(ctx.data.total_area)} m2)"


WAREHOUSE_METHODS: Dict[CalcMethodType, Callable[[_Context, CalcMethod], Resolution]] = {
    CalcMethodType.PER_ROOM: _wh_method_detector,
    CalcMethodType.PER_AREA: _wh_method_detector,
    CalcMethodType.PER_FLOOR: _wh_method_cabinet,
    CalcMethodType.PER_FLOOR_BELL: _wh_method_cabinet,
    CalcMethodType.PER_LINEAR_CABLE: _wh_method_cable,
    CalcMethodType.PER_BUILDING: lambda ctx, m: (_scaled(1, m), "1 per warehouse"),
}


# --- dispatch --------------------------------------------------------------

def _by_method(table, ctx: _Context, eq: Equipment) -> Resolution:
    method = eq.calc_method
    handler = table.get(method.known_type())
    if handler is None:
        logger.debug("No %s rule for calc method %r of %s", ctx.data.building_type.value, method.type, eq.id)
        return 0, f"Calculation method '{method.type}' is not supported for {ctx.data.building_type.value} buildings"
    return handler(ctx, method)


def resolve_quantity(ctx: _Context, eq: Equipment) -> Resolution:
    if eq.calc_method is None:
        return 0, "No calculation method assigned"

    building = ctx.data.building_type
    if building == BuildingType.RESIDENTIAL:
        policy, methods = RESIDENTIAL_POLICY[ctx.package], RESIDENTIAL_METHODS
    elif building == BuildingType.WAREHOUSE:
        # warehouses always get the full system whatever package was picked
        policy, methods = WAREHOUSE_POLICY, WAREHOUSE_METHODS
    else:
        return 0, f"No estimation rules for {building.value} buildings"

    rule = policy.get(eq.category)
    if rule is not None:
        quantity, note = rule(ctx, eq)
    else:
        quantity, note = _by_method(methods, ctx, eq)
    return max(0, quantity), note


def estimate(user_input: UserInput, package_type: PackageType, config: Configuration) -> EstimationResult:
    """Price the equipment ``config`` calls for on the described building."""
    rules = config.rules
    package = PackageType(package_type)
    heat_count = 0
    if user_input.building_type == BuildingType.WAREHOUSE:
        heat_count = warehouse_heat_count(config, user_input)

    ctx = _Context(
        data=user_input,
        package=package,
        residential=(rules.residential if rules else None) or ResidentialRules(),
        warehouse=(rules.warehouse if rules else None) or WarehouseRules(),
        heat_count=heat_count,
    )

    items: List[LineItem] = []
    total_cost = 0.0
    for eq in config.equipments:
        quantity, note = resolve_quantity(ctx, eq)
        if quantity <= 0:
            continue
        total_price = quantity * eq.price
        if not math.isfinite(total_cost + total_price):
            logger.warning("Dropping %s: %d x %s does not fit in a cost total", eq.id, quantity, eq.price)
            continue
        items.append(LineItem(
            id=eq.id,
            name=eq.name,
            quantity=quantity,
            unit_price=eq.price,
            total_price=total_price,
            note=note,
            icon=eq.icon,
        ))
        total_cost += total_price

    logger.debug(
        "Estimated %s/%s: %d line items, total=%s",
        user_input.building_type.value, package.value, len(items), total_cost,
    )
    return EstimationResult(total_cost=total_cost, equipment_list=tuple(items))
