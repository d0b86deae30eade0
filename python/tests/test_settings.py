import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from lobbyping.settings import Settings, SettingsError, load_settings, save_settings, validate_address


class SettingsTest(unittest.TestCase):
    def test_round_trip_through_file(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "settings.json"
            save_settings(Settings(addr="192.168.1.10", autoload=True), path)

            self.assertEqual(json.loads(path.read_text()), {"addr": "192.168.1.10", "autoload": True})
            self.assertEqual(load_settings(path), Settings(addr="192.168.1.10", autoload=True))

    def test_missing_or_corrupt_file_yields_defaults(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "settings.json"
            self.assertEqual(load_settings(path), Settings())

            path.write_text("{not json")
            self.assertEqual(load_settings(path), Settings())

            path.write_text("[1, 2]")
            self.assertEqual(load_settings(path), Settings())

    def test_autoload_string_flags(self) -> None:
        for value in ("0", "false", "False", "no", "off", "", 0, None):
            settings = Settings.from_dict({"addr": "192.168.1.10", "autoload": value})
            self.assertIs(settings.autoload, False, value)
        for value in ("1", "TRUE", " yes ", "on", True, 1):
            settings = Settings.from_dict({"addr": "192.168.1.10", "autoload": value})
            self.assertIs(settings.autoload, True, value)

    def test_hand_edited_file_with_disabled_autoload(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "settings.json"
            path.write_text(json.dumps({"addr": "192.168.1.10", "autoload": "0"}))
            self.assertEqual(load_settings(path), Settings(addr="192.168.1.10", autoload=False))

    def test_validate_address(self) -> None:
        self.assertEqual(validate_address(" 10.0.0.5 "), "10.0.0.5")
        for bad in ("", "1.2.3", "0.0.0.0", "300.1.1.1", "host.example"):
            with self.assertRaises(SettingsError):
                validate_address(bad)


if __name__ == "__main__":  # pragma: no cover - convenience
    unittest.main()
