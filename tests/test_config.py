import pathlib
import tempfile
import unittest

from signglove.config import protocol
from signglove.config.runtime import GloveConfig, config_from_mapping, load_config


class GloveConfigTest(unittest.TestCase):
    def test_defaults_match_firmware_constants(self):
        cfg = config_from_mapping(None)
        self.assertEqual(cfg.device_name, "FakeGloveBLE")
        self.assertEqual(cfg.service_uuid, protocol.SERVICE_UUID)
        self.assertEqual(cfg.characteristic_uuid, protocol.LETTER_CHAR_UUID)
        self.assertEqual(cfg.descriptor_uuid, protocol.CCCD_UUID)
        self.assertEqual(cfg.scan_timeout_s, 10.0)
        self.assertEqual(cfg.scan_timeout_ms, 10_000)
        self.assertEqual(cfg.target_phrase, "CHESTPAIN")
        self.assertEqual(cfg.pulse_ms, 300)

    def test_glove_block_is_flattened_and_unknown_keys_ignored(self):
        cfg = config_from_mapping(
            {"glove": {"device_name": "MyGlove", "target_phrase": "hi"}, "theme": "dark"}
        )
        self.assertEqual(cfg.device_name, "MyGlove")
        self.assertEqual(cfg.target_phrase, "HI")

    def test_sanitized_clamps_refresh_rate_and_uuids(self):
        cfg = GloveConfig(refresh_hz=500.0, service_uuid="6E400001-B5A3-F393-E0A9-E50E24DCCA9E").sanitized()
        self.assertEqual(cfg.refresh_hz, 50.0)
        self.assertEqual(cfg.refresh_interval_ms, 20)
        self.assertEqual(cfg.service_uuid, protocol.SERVICE_UUID)

        slow = GloveConfig(refresh_hz=1.0).sanitized()
        self.assertEqual(slow.refresh_hz, 20.0)
        self.assertEqual(slow.refresh_interval_ms, 50)

    def test_blank_phrase_falls_back_to_default(self):
        cfg = GloveConfig(target_phrase="   ").sanitized()
        self.assertEqual(cfg.target_phrase, protocol.TARGET_PHRASE)

    def test_load_config_missing_file_uses_defaults(self):
        cfg = load_config("/nonexistent/signglove.yaml")
        self.assertEqual(cfg, GloveConfig().sanitized())
        self.assertEqual(load_config(None), GloveConfig().sanitized())

    def test_load_config_reads_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "glove.yaml"
            path.write_text("glove:\n  scan_timeout_s: 3\n  refresh_hz: 25\n", encoding="utf-8")

            cfg = load_config(path)

            self.assertEqual(cfg.scan_timeout_s, 3.0)
            self.assertEqual(cfg.refresh_hz, 25.0)

    def test_load_config_rejects_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "glove.yaml"
            path.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)


if __name__ == "__main__":
    unittest.main()
