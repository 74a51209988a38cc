import unittest
from datetime import datetime

from flask import Flask

from ministore.extensions import db
from ministore.models import StorageEntry
from ministore.services import backup_service, settings_service
from ministore.services.demo_data import build_demo_state
from ministore.services.persistence_service import SqlLocalStorage
from ministore.services.store_service import Store
from ministore.validation import ValidationError

NOW = datetime(2026, 3, 15, 12, 0, 0)


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
        from ministore import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StorageEntry).delete()
        db.session.commit()
        self.store = Store(SqlLocalStorage(), clock=lambda: NOW)
        self.store.load()

    def _reloaded(self) -> Store:
        store = Store(SqlLocalStorage(), clock=lambda: NOW)
        store.load()
        return store

    def test_defaults(self):
        settings = settings_service.get_settings(self.store.state)
        self.assertEqual(settings.low_stock_threshold, 5)
        self.assertTrue(settings.reorder_suggestions)
        self.assertEqual(self.store.source, "empty")

    def test_update_persists_to_local_storage(self):
        result = self.store.execute(
            settings_service.update_settings,
            {"lowStockThreshold": "8", "businessName": "  Corner Store ", "reorderSuggestions": "off"},
        )
        self.assertEqual(result.value.low_stock_threshold, 8)
        self.assertEqual(result.value.business_name, "Corner Store")
        self.assertFalse(result.value.reorder_suggestions)

        keys = [row.key for row in db.session.query(StorageEntry).all()]
        self.assertEqual(keys, ["settings"])

        reloaded = self._reloaded()
        self.assertEqual(reloaded.source, "local")
        self.assertEqual(reloaded.state.settings, result.value)

    def test_partial_update_keeps_other_fields(self):
        self.store.execute(settings_service.update_settings, {"taxRate": 12})
        result = self.store.execute(settings_service.update_settings, {"lowStockThreshold": 3})
        self.assertEqual(result.value.tax_rate, 12.0)
        self.assertEqual(result.value.low_stock_threshold, 3)

    def test_rejects_unknown_and_invalid_values(self):
        bad_patches = [
            {"theme": "dark"},
            {"lowStockThreshold": -1},
            {"lowStockThreshold": 2.5},
            {"reorderSuggestions": "maybe"},
            {"businessName": ""},
            {"taxRate": "nan"},
        ]
        for patch in bad_patches:
            with self.subTest(patch=patch):
                with self.assertRaises(ValidationError):
                    self.store.execute(settings_service.update_settings, patch)
        self.assertEqual(db.session.query(StorageEntry).count(), 0)

    def test_backup_restore_and_wipe(self):
        demo = build_demo_state(NOW)
        snapshot = backup_service.export_snapshot(demo, NOW)
        self.assertEqual(snapshot["totalProducts"], 8)
        self.assertEqual(snapshot["systemVersion"], "Mini Store Manager 2.0")
        self.assertEqual(snapshot["exportDate"], "2026-03-15T12:00:00Z")

        restored = backup_service.restore_snapshot(snapshot)
        self.assertEqual(restored, demo)

        self.store.replace_state(restored)
        self.assertEqual(db.session.query(StorageEntry).count(), 5)
        self.assertEqual(len(self._reloaded().state.sales), len(demo.sales))

        self.store.replace_state(backup_service.clear_all_data())
        reloaded = self._reloaded()
        self.assertEqual(reloaded.state.products, ())
        self.assertEqual(reloaded.state.settings.business_name, "My Mini Store")

    def test_restore_rejects_malformed_backup(self):
        with self.assertRaises(ValidationError):
            backup_service.restore_snapshot(["not", "an", "object"])
        with self.assertRaises(ValidationError):
            backup_service.restore_snapshot({"products": {"id": 1}})
        with self.assertRaises(ValidationError):
            backup_service.restore_snapshot({"sales": [{"quantity": 1}]})

    def test_restore_rejects_products_breaking_stock_rules(self):
        base = {"id": 1, "name": "Rice", "quantity": 5, "originalPrice": 10, "sellingPrice": 20}
        bad_products = [
            [dict(base, quantity=-7)],
            [dict(base, originalPrice=-3)],
            [dict(base, quantity=2.5)],
            [dict(base, name="  ")],
            [base, dict(base, name="Beans")],
            [base, dict(base, id=2, name="RICE")],
            [dict(base, barcode="480"), dict(base, id=2, name="Beans", barcode="480")],
        ]
        for products in bad_products:
            with self.subTest(products=products):
                with self.assertRaises(ValidationError) as ctx:
                    backup_service.restore_snapshot({"products": products})
                self.assertEqual(ctx.exception.entity, "product")

        restored = backup_service.restore_snapshot(
            {"products": [base, dict(base, id=2, name="Beans", barcode="")], "settings": {}}
        )
        self.assertEqual(len(restored.products), 2)

    def test_stored_reorder_flag_text_is_coerced(self):
        restored = backup_service.restore_snapshot({"settings": {"reorderSuggestions": "false"}})
        self.assertFalse(restored.settings.reorder_suggestions)
        restored = backup_service.restore_snapshot({"settings": {"reorderSuggestions": 1}})
        self.assertTrue(restored.settings.reorder_suggestions)
        with self.assertRaises(ValidationError):
            backup_service.restore_snapshot({"settings": {"reorderSuggestions": "maybe"}})


if __name__ == "__main__":
    unittest.main()
