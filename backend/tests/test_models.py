import pytest
from pydantic import ValidationError

from firesafe.models.estimate import (
    CalcMethod,
    CalcMethodType,
    Configuration,
    Equipment,
    Rules,
    StorageType,
    UserInput,
    WarehouseRules,
    coerce_non_negative,
)
from firesafe.services.defaults import BUILDING_TYPE_INFO, DEFAULT_CONFIG, applicable_packages


@pytest.mark.parametrize("raw, expected", [
    ("3", 3.0),
    (" 2.5 ", 2.5),
    ("", 0.0),
    ("abc", 0.0),
    (None, 0.0),
    (-4, 0.0),
    ("nan", 0.0),
    ("inf", 0.0),
    (7, 7.0),
])
def test_coerce_non_negative(raw, expected):
    assert coerce_non_negative(raw) == expected


def test_user_input_coerces_bad_numbers_to_zero():
    data = UserInput.model_validate({
        "buildingType": "warehouse",
        "floors": "abc",
        "rooms": 2.7,
        "kitchenAltar": None,
        "totalArea": "-50",
        "storageType": "chemical",
    })

    assert data.floors == 0
    assert data.rooms == 2
    assert data.kitchen_altar == 0
    assert data.total_area == 0
    assert data.storage_type is StorageType.CHEMICAL
    assert data.ceiling_height == 6


def test_user_input_rejects_unknown_building_type():
    with pytest.raises(ValidationError):
        UserInput.model_validate({"buildingType": "castle"})


def test_rules_fall_back_to_defaults():
    rules = Rules.model_validate({
        "residential": {"cabinetPerFloors": 0, "smokePerRoom": "x"},
        "warehouse": None,
    })

    assert rules.residential.cabinet_per_floors == 2
    assert rules.residential.smoke_per_room == 1
    assert rules.residential.heat_per_kitchen_altar == 1
    assert rules.warehouse == WarehouseRules()


def test_cable_ratios_sanitized():
    rules = WarehouseRules.model_validate({"cableRatios": {"general": -1, "chemical": 2}})

    assert rules.cable_ratios.general == 0.5
    assert rules.cable_ratios.for_storage(StorageType.CHEMICAL) == 2
    assert rules.cable_ratios.for_storage("flammable") == 1.0


def test_duplicate_equipment_ids_rejected():
    eq = Equipment(id="smoke", name="Smoke", price=1)
    with pytest.raises(ValidationError):
        Configuration(equipments=(eq, eq))


def test_negative_price_rejected():
    with pytest.raises(ValidationError):
        Equipment(id="x", name="X", price=-1)


def test_unknown_calc_method_is_kept():
    method = CalcMethod(type="per_window")

    assert method.known_type() is None
    assert CalcMethod(type="per_area").known_type() is CalcMethodType.PER_AREA


def test_config_dumps_camel_case():
    dumped = DEFAULT_CONFIG.model_dump(by_alias=True, mode="json")

    assert dumped["equipments"][0]["calcMethod"] == {"type": "per_room", "value": None}
    assert dumped["equipments"][0]["isDefault"] is True
    assert dumped["rules"]["residential"]["cabinetPerFloors"] == 2
    assert dumped["rules"]["warehouse"]["cableRatios"]["flammable"] == 1.0
    assert "companyInfo" in dumped


def test_models_are_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_CONFIG.equipments[0].price = 1


def test_applicable_packages_policy():
    assert [p.value for p in applicable_packages("residential")] == ["independent", "local", "smart"]
    assert [p.value for p in applicable_packages("warehouse")] == ["smart"]
    assert applicable_packages("office") == []
    assert {b.value for b in BUILDING_TYPE_INFO} == {"residential", "office", "warehouse"}
