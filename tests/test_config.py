"""
Unit tests for webstack configuration.
"""

import pytest

from webstack.config import (
    CookieConfig,
    CorsConfig,
    HttpsConfig,
    ServerConfig,
    load_config_from_env,
)
from webstack.exceptions import ConfigError
from webstack.logging_config import ACCESS_LOGGER, get_logging_config


class TestFromMapping:
    """Test building ServerConfig from nested mappings."""

    def test_camel_case_keys(self, base_config):
        base_config["cors"] = {
            "allowOrigins": ["https://a.example"],
            "allowMethods": ["GET", "POST"],
            "exposeHeaders": ["X-Total"],
            "maxAge": 60,
            "allowCredentials": True,
        }
        base_config["https"] = {"listen": "127.0.0.1", "keyPath": "k.pem", "certPath": "c.pem", "caPath": "ca.pem"}

        config = ServerConfig.from_mapping(base_config)

        assert config.cookie.keys == ("test-secret",)
        assert config.session.key == "sid"
        assert config.session.max_age == 1000
        assert config.session.redis.url == "redis://localhost/0"
        assert config.cors.allow_origins == ("https://a.example",)
        assert config.cors.allow_methods == ("GET", "POST")
        assert config.cors.expose_headers == ("X-Total",)
        assert config.cors.max_age == 60
        assert config.cors.allow_credentials is True
        assert config.https.listen == "127.0.0.1"
        assert config.https.ca_path == "ca.pem"

    def test_snake_case_keys(self, base_config):
        base_config["session"]["max_age"] = 30
        del base_config["session"]["maxAge"]

        config = ServerConfig.from_mapping(base_config)

        assert config.session.max_age == 30

    def test_cors_absent_disables_cors(self, base_config):
        assert ServerConfig.from_mapping(base_config).cors is None

    def test_cors_wildcard_string(self, base_config):
        base_config["cors"] = {"allowOrigins": "*"}
        assert ServerConfig.from_mapping(base_config).cors.allow_origins is True

    def test_cors_predicate(self, base_config):
        predicate = lambda origin: origin.endswith(".example")
        base_config["cors"] = {"allowOrigins": predicate}
        assert ServerConfig.from_mapping(base_config).cors.allow_origins is predicate

    def test_missing_cookie_keys(self, base_config):
        del base_config["cookie"]
        with pytest.raises(ConfigError, match="cookie.keys"):
            ServerConfig.from_mapping(base_config)

    def test_empty_cookie_keys(self, base_config):
        base_config["cookie"]["keys"] = []
        with pytest.raises(ConfigError):
            ServerConfig.from_mapping(base_config)

    def test_missing_session(self, base_config):
        del base_config["session"]
        with pytest.raises(ConfigError, match="session"):
            ServerConfig.from_mapping(base_config)

    def test_missing_redis_url(self, base_config):
        base_config["session"]["redis"] = {}
        with pytest.raises(ConfigError, match="session.redis.url"):
            ServerConfig.from_mapping(base_config)

    def test_none_config(self):
        with pytest.raises(ConfigError):
            ServerConfig.from_mapping(None)

    def test_invalid_listen(self, base_config):
        base_config["http"]["listen"] = 8080
        with pytest.raises(ConfigError, match="http.listen"):
            ServerConfig.from_mapping(base_config)

    def test_https_requires_key_and_cert(self, base_config):
        base_config["https"] = {"listen": True}
        with pytest.raises(ConfigError, match="key_path"):
            ServerConfig.from_mapping(base_config)

    def test_defaults_when_listeners_absent(self, base_config):
        del base_config["http"]
        del base_config["https"]

        config = ServerConfig.from_mapping(base_config)

        assert config.http.listen is False
        assert config.https.listen is False


class TestImmutability:
    """Configuration cannot change after it is built."""

    def test_frozen(self, base_config):
        config = ServerConfig.from_mapping(base_config)
        with pytest.raises(AttributeError):
            config.session = None

    def test_lists_become_tuples(self):
        assert CookieConfig(keys=["a", "b"]).keys == ("a", "b")
        assert CorsConfig(allow_origins=["https://a.example"]).allow_origins == ("https://a.example",)

    def test_cors_false_rejected(self):
        with pytest.raises(ConfigError):
            CorsConfig(allow_origins=False)

    def test_https_disabled_needs_no_paths(self):
        assert HttpsConfig(listen=False).key_path is None


class TestLoadFromEnv:
    """Test environment-based configuration."""

    def test_requires_cookie_keys(self):
        with pytest.raises(ConfigError, match="WEBSTACK_COOKIE_KEYS"):
            load_config_from_env({})

    def test_defaults(self):
        config = load_config_from_env({"WEBSTACK_COOKIE_KEYS": "new, old"})

        assert config.cookie.keys == ("new", "old")
        assert config.session.redis.url == "redis://localhost:6379/0"
        assert config.http.listen is True
        assert config.https.listen is False
        assert config.cors is None

    def test_full_environment(self):
        config = load_config_from_env(
            {
                "WEBSTACK_COOKIE_KEYS": "k",
                "WEBSTACK_SESSION_KEY": "app.sid",
                "WEBSTACK_SESSION_MAX_AGE": "120",
                "REDIS_URL": "redis://cache:6379",
                "WEBSTACK_REDIS_DB": "3",
                "WEBSTACK_HTTP_LISTEN": "127.0.0.1:8080",
                "WEBSTACK_HTTPS_LISTEN": "false",
                "WEBSTACK_CORS_ORIGINS": "https://a.example, https://b.example",
                "WEBSTACK_CORS_ALLOW_CREDENTIALS": "true",
            }
        )

        assert config.session.key == "app.sid"
        assert config.session.max_age == 120
        assert config.session.redis.url == "redis://cache:6379"
        assert config.session.redis.db == 3
        assert config.http.listen == "127.0.0.1:8080"
        assert config.cors.allow_origins == ("https://a.example", "https://b.example")
        assert config.cors.allow_credentials is True

    def test_invalid_max_age(self):
        with pytest.raises(ConfigError, match="session.max_age"):
            load_config_from_env({"WEBSTACK_COOKIE_KEYS": "k", "WEBSTACK_SESSION_MAX_AGE": "soon"})


class TestLoggingConfig:
    """Test the dictConfig handed to uvicorn."""

    def test_level_applies_to_webstack_loggers(self):
        config = get_logging_config("debug")

        assert config["loggers"]["webstack"]["level"] == "DEBUG"
        assert config["loggers"][ACCESS_LOGGER]["level"] == "DEBUG"
        assert config["loggers"]["uvicorn"]["level"] == "INFO"

    def test_uvicorn_access_log_silenced(self):
        assert get_logging_config()["loggers"]["uvicorn.access"]["handlers"] == []