import pytest
from pydantic import ValidationError

from mongo_bridge.config import BridgeConfig


class TestBridgeConfig:
    def test_defaults(self):
        config = BridgeConfig.from_env({})

        assert config.uri == "mongodb://localhost:27017"
        assert config.default_db == "claude_db"
        assert config.request_timeout == 30.0
        assert config.ordered is False
        assert config.log_file is None
        assert config.log_level == "INFO"
        assert config.timeout_ms == 30000

    def test_from_env(self):
        config = BridgeConfig.from_env(
            {
                "MONGODB_URI": "mongodb://db:27017",
                "MONGODB_DB": "app",
                "MONGODB_BRIDGE_TIMEOUT": "2.5",
                "MONGODB_BRIDGE_ORDERED": "true",
                "MONGODB_BRIDGE_SHUTDOWN_GRACE": "1",
                "MONGODB_BRIDGE_LOG_FILE": "",
                "UNRELATED": "x",
            }
        )

        assert config.uri == "mongodb://db:27017"
        assert config.default_db == "app"
        assert config.request_timeout == 2.5
        assert config.timeout_ms == 2500
        assert config.ordered is True
        assert config.shutdown_grace == 1.0
        assert config.log_file is None

    def test_timeout_disabled(self):
        config = BridgeConfig.from_env({"MONGODB_BRIDGE_TIMEOUT": "0"})

        assert config.timeout_ms is None

    @pytest.mark.parametrize(
        "environ",
        [
            {"MONGODB_BRIDGE_TIMEOUT": "soon"},
            {"MONGODB_BRIDGE_TIMEOUT": "-1"},
            {"MONGODB_BRIDGE_ORDERED": "maybe"},
            {"MONGODB_BRIDGE_LOG_LEVEL": "chatty"},
        ],
    )
    def test_invalid_values(self, environ):
        with pytest.raises(ValidationError):
            BridgeConfig.from_env(environ)

    def test_frozen(self):
        config = BridgeConfig()

        with pytest.raises(ValidationError):
            config.default_db = "other"
