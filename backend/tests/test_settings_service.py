import unittest
from flask import Flask

from lelca_pos.extensions import db
from lelca_pos.time_utils import utcnow
from lelca_pos.models import StoreSettings
from lelca_pos.services import settings_service
from lelca_pos.services.settings_service import (
    DEFAULT_SETTINGS,
    SETTINGS_SCHEMA_VERSION,
    SettingsError,
    migrate_settings,
)


class SettingsMigrationTests(unittest.TestCase):
    def test_empty_document_gets_defaults(self):
        doc = migrate_settings(None)
        self.assertEqual(doc["schema_version"], SETTINGS_SCHEMA_VERSION)
        self.assertEqual(doc["inventory"], DEFAULT_SETTINGS["inventory"])

    def test_flat_legacy_keys_fold_into_sections(self):
        doc = migrate_settings({
            "lowStockThreshold": 15,
            "criticalStockLevel": 5,
            "storeName": "Lelca",
            "taxRate": 0,
            "pexelsApiKey": "dropped",
        })
        self.assertEqual(doc["inventory"]["low_stock_threshold"], 15)
        self.assertEqual(doc["inventory"]["critical_stock_level"], 5)
        self.assertEqual(doc["store"]["name"], "Lelca")
        self.assertEqual(doc["receipt"]["tax_rate"], 0)
        self.assertNotIn("pexelsApiKey", doc)

    def test_nested_camel_case_document(self):
        doc = migrate_settings({
            "store": {"name": "Lelca", "address": {"city": "Accra"}, "logo": None},
            "receipt": {"taxEnabled": False, "taxRate": 10},
            "inventory": {"lowStockThreshold": 8, "defaultView": "grid"},
            "appearance": {"theme": "dark"},
        })
        self.assertEqual(doc["store"]["address"], {"line1": "", "line2": "", "city": "Accra"})
        self.assertFalse(doc["receipt"]["tax_enabled"])
        self.assertEqual(doc["receipt"]["tax_rate"], 10)
        self.assertEqual(doc["inventory"]["low_stock_threshold"], 8)
        self.assertEqual(doc["inventory"]["critical_stock_level"], 3)
        self.assertNotIn("default_view", doc["inventory"])
        self.assertNotIn("appearance", doc)
        self.assertNotIn("logo", doc["store"])

    def test_current_version_passes_through(self):
        current = migrate_settings(None)
        current["receipt"]["slogan"] = "Hello"
        self.assertEqual(migrate_settings(current), current)

    def test_effective_tax_rate(self):
        doc = migrate_settings({"receipt": {"taxEnabled": False, "taxRate": 12.5}})
        self.assertEqual(settings_service.PosSettings.from_document(doc).effective_tax_rate, 0.0)


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from lelca_pos import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StoreSettings).delete()
        db.session.commit()

    def test_defaults_without_stored_document(self):
        settings = settings_service.get_settings()
        self.assertEqual(settings.inventory.low_stock_threshold, 10)
        self.assertEqual(settings.receipt.tax_rate, 12.5)
        self.assertFalse(settings_service.settings_exist())

    def test_old_document_migrated_once_on_load(self):
        db.session.add(StoreSettings(
            key=settings_service.SETTINGS_KEY,
            schema_version=0,
            data={"lowStockThreshold": 20, "storeName": "Legacy"},
            updated_at=utcnow(),
        ))
        db.session.commit()

        settings = settings_service.get_settings()
        self.assertEqual(settings.inventory.low_stock_threshold, 20)
        self.assertEqual(settings.store.name, "Legacy")

        row = db.session.query(StoreSettings).one()
        self.assertEqual(row.schema_version, SETTINGS_SCHEMA_VERSION)
        self.assertEqual(row.data["inventory"]["low_stock_threshold"], 20)

    def test_update_section(self):
        settings = settings_service.update_settings("inventory", {"low_stock_threshold": 12})
        self.assertEqual(settings.inventory.low_stock_threshold, 12)
        self.assertEqual(settings_service.get_settings().inventory.low_stock_threshold, 12)

    def test_update_rejects_invalid_values(self):
        with self.assertRaises(SettingsError):
            settings_service.update_settings("inventory", {"critical_stock_level": 50})
        with self.assertRaises(SettingsError):
            settings_service.update_settings("receipt", {"tax_rate": 150})
        with self.assertRaises(SettingsError):
            settings_service.update_settings("store", {"name": "  "})
        self.assertFalse(settings_service.settings_exist())

    def test_unknown_section(self):
        with self.assertRaises(SettingsError):
            settings_service.update_settings("appearance", {"theme": "dark"})

    def test_import_and_reset(self):
        settings_service.import_settings({"storeName": "Imported", "taxRate": 5})
        self.assertEqual(settings_service.get_settings().store.name, "Imported")

        settings = settings_service.reset_settings()
        self.assertEqual(settings.store.name, DEFAULT_SETTINGS["store"]["name"])
        self.assertEqual(settings_service.get_settings().receipt.tax_rate, 12.5)


if __name__ == "__main__":
    unittest.main()
