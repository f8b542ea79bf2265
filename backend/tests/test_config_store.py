import json

import pytest

from firesafe.models.estimate import CalcMethod, Equipment, EquipmentCategory, Rules
from firesafe.models.records import ConfigRecord
from firesafe.services.config_store import (
    CONFIG_KEY,
    ConfigError,
    ConfigStore,
    infer_category,
    migrate_config,
    new_equipment_id,
)
from firesafe.services.defaults import DEFAULT_CONFIG

# Catalog as saved by the earliest browser-only version: no categories, no warehouse rules
LEGACY_BLOB = {
    "equipments": [
        {"id": "smoke", "name": "Đầu báo khói", "price": 650000, "icon": "💨",
         "isDefault": True, "calcMethod": {"type": "per_room"}},
        {"id": "heat", "name": "Đầu báo nhiệt", "price": 650000, "icon": "🔥",
         "isDefault": True, "calcMethod": {"type": "per_kitchen_altar"}},
        {"id": "combination", "name": "Tủ tổ hợp chuông đèn", "price": 1890000, "icon": "🔔",
         "isDefault": True, "calcMethod": {"type": "per_floor"}},
        {"id": "custom_1", "name": "Dây cáp nhiệt", "price": 45000, "icon": "📦",
         "isDefault": False, "calcMethod": {"type": "per_linear_cable"}},
        {"id": "custom_2", "name": "Chuông báo cháy", "price": 320000, "icon": "📦",
         "isDefault": False, "calcMethod": {"type": "per_floor_bell"}},
    ],
    "rules": {"residential": {"cabinetPerFloors": 3, "smokePerRoom": 1, "heatPerKitchenAltar": 1}},
    "companyInfo": {"name": "PCCC Toàn Cầu"},
    "updatedAt": "2025-01-01T00:00:00Z",
    "someOldField": True,
}


def _store_raw(session, payload):
    session.add(ConfigRecord(key=CONFIG_KEY, payload=payload))
    session.commit()


def test_load_returns_defaults_when_nothing_saved(session):
    config = ConfigStore(session).load()

    assert config == DEFAULT_CONFIG
    assert config.updated_at is None


def test_save_stamps_timestamp_and_persists(session):
    store = ConfigStore(session)
    saved = store.save(DEFAULT_CONFIG)

    assert saved.updated_at is not None
    loaded = store.load()
    assert loaded.updated_at == saved.updated_at
    assert loaded.equipments == DEFAULT_CONFIG.equipments


def test_legacy_blob_is_migrated(session):
    _store_raw(session, json.dumps(LEGACY_BLOB))

    config = ConfigStore(session).load()
    categories = {eq.id: eq.category for eq in config.equipments}

    assert categories == {
        "smoke": EquipmentCategory.SMOKE,
        "heat": EquipmentCategory.HEAT,
        "combination": EquipmentCategory.CABINET,
        "custom_1": EquipmentCategory.OTHER,
        "custom_2": EquipmentCategory.BELL,
    }
    assert config.rules.residential.cabinet_per_floors == 3
    assert config.rules.warehouse.smoke_detector_area == 35
    assert config.company_info.name == "PCCC Toàn Cầu"
    assert config.updated_at == "2025-01-01T00:00:00Z"


def test_unreadable_blob_falls_back_to_defaults(session):
    _store_raw(session, "{not json")

    assert ConfigStore(session).load() == DEFAULT_CONFIG


def test_missing_equipments_use_default_catalog():
    config = migrate_config({"rules": {"warehouse": {"cabinetArea": 150}}})

    assert [eq.id for eq in config.equipments] == [eq.id for eq in DEFAULT_CONFIG.equipments]
    assert config.rules.warehouse.cabinet_area == 150


def test_migrate_rejects_non_object():
    with pytest.raises(ValueError):
        migrate_config(["smoke"])


def test_migrate_keeps_explicit_category():
    config = migrate_config({"equipments": [
        {"id": "smoke_like", "name": "Smoke-ish", "price": 1, "category": "panel",
         "calcMethod": {"type": "per_building"}},
    ]})

    assert config.equipments[0].category is EquipmentCategory.PANEL


@pytest.mark.parametrize("entry, expected", [
    ({"id": "heat_cable", "name": "Linear heat cable"}, EquipmentCategory.OTHER),
    ({"id": "custom_9", "name": "Tủ trung tâm báo cháy"}, EquipmentCategory.PANEL),
    ({"id": "x", "name": "Exit sign"}, EquipmentCategory.OTHER),
    ({"id": "bell_2", "name": ""}, EquipmentCategory.BELL),
])
def test_infer_category(entry, expected):
    assert infer_category(entry) is expected


def test_add_equipment(session):
    store = ConfigStore(session)
    extra = Equipment(id="extinguisher", name="Extinguisher", price=250000,
                      calc_method=CalcMethod(type="per_floor"))

    config = store.add_equipment(extra)

    assert config.equipments[-1] == extra
    assert store.load().get_equipment("extinguisher") == extra


def test_add_duplicate_id_raises(session):
    store = ConfigStore(session)
    with pytest.raises(ConfigError):
        store.add_equipment(Equipment(id="smoke", name="Again", price=1))


def test_update_equipment(session):
    store = ConfigStore(session)
    config = store.update_equipment("smoke", {"price": 700000, "id": "ignored"})

    smoke = config.get_equipment("smoke")
    assert smoke.price == 700000
    assert smoke.category is EquipmentCategory.SMOKE
    assert store.load().get_equipment("smoke").price == 700000


def test_remove_equipment(session):
    store = ConfigStore(session)
    config = store.remove_equipment("bell")

    assert config.get_equipment("bell") is None
    assert store.load().get_equipment("bell") is None
    with pytest.raises(ConfigError):
        store.remove_equipment("bell")


def test_update_rules_and_reset(session):
    store = ConfigStore(session)
    store.update_rules(Rules.model_validate({"residential": {"cabinetPerFloors": 4}}))
    assert store.load().rules.residential.cabinet_per_floors == 4

    reset = store.reset()
    assert reset.rules == DEFAULT_CONFIG.rules
    assert store.load().rules.residential.cabinet_per_floors == 2


def test_new_equipment_id_is_unique():
    assert new_equipment_id() != new_equipment_id()
    assert new_equipment_id().startswith("custom_")
