import unittest
from flask import Flask

from g24pos.config import Config
from g24pos.extensions import db
from g24pos.models import StoreSettings
from g24pos.services import settings_service
from g24pos.validation import ValidationError, enforce_rules_store_settings


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.from_object(Config)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from g24pos import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StoreSettings).delete()
        db.session.commit()

    def test_first_access_creates_defaults(self):
        settings = settings_service.get_store_settings()

        self.assertEqual(settings.store_name, Config.DEFAULT_STORE_SETTINGS["store_name"])
        self.assertEqual(settings.currency, "VND")
        self.assertEqual(db.session.query(StoreSettings).count(), 1)

    def test_repeated_access_reuses_row(self):
        first = settings_service.get_store_settings()
        second = settings_service.get_store_settings()
        self.assertEqual(first.id, second.id)
        self.assertEqual(db.session.query(StoreSettings).count(), 1)

    def test_update_ignores_unknown_keys(self):
        settings = settings_service.update_store_settings(
            patch={"store_name": "G24 Quận 3", "tax_rate": 8.0, "owner": "nobody"}
        )

        self.assertEqual(settings.store_name, "G24 Quận 3")
        self.assertEqual(settings.tax_rate, 8.0)
        self.assertFalse(hasattr(settings, "owner"))

    def test_admin_dict_has_timestamp(self):
        data = settings_service.get_store_settings().to_admin_dict()
        self.assertEqual(set(data) - {"updated_at"}, set(StoreSettings.SERIALIZED_FIELDS))
        self.assertTrue(data["updated_at"].endswith("Z"))

    def test_reset_overlays_values_on_defaults(self):
        settings_service.update_store_settings(patch={"store_name": "Old", "currency": "USD"})

        settings = settings_service.reset_store_settings({"store_name": "New"})
        db.session.commit()

        self.assertEqual(settings.store_name, "New")
        self.assertEqual(settings.currency, Config.DEFAULT_STORE_SETTINGS["currency"])
        self.assertEqual(db.session.query(StoreSettings).count(), 1)

    def test_tax_rate_bounds(self):
        enforce_rules_store_settings({"tax_rate": 0})
        enforce_rules_store_settings({"tax_rate": 100})
        with self.assertRaises(ValidationError):
            enforce_rules_store_settings({"tax_rate": -1})
        with self.assertRaises(ValidationError):
            enforce_rules_store_settings({"tax_rate": 100.5})


if __name__ == "__main__":
    unittest.main()
