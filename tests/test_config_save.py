import unittest, tempfile, pathlib
from spadmin.config import Config, save_to_env

class TestConfigSave(unittest.TestCase):
    def test_save_roundtrip(self):
        cfg = Config.from_env()
        cfg.backend = "http"
        cfg.gateway_url = "http://sp-admin01:8080"
        cfg.log_console = False
        p = pathlib.Path(tempfile.gettempdir()) / "spadmin_test.env"
        save_to_env(cfg, str(p))
        txt = p.read_text()
        self.assertIn("SPADMIN_BACKEND=http", txt)
        self.assertIn("SPADMIN_GATEWAY_URL=http://sp-admin01:8080", txt)
        self.assertIn("SPADMIN_LOG_CONSOLE=false", txt)
