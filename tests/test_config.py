import pytest

from aggregator_api.app.core.config import Settings, parse_args, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("15s", 15.0),
            ("1m", 60.0),
            ("500ms", 0.5),
            ("1h30m", 5400.0),
            ("1m30s", 90.0),
            ("1.5s", 1.5),
            ("20", 20.0),
            (" 2s ", 2.0),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "s", "15x", "1m foo", "abc", "10 s"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestSettings:
    def test_bad_port_raises_value_error(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ValueError):
            Settings()

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("INFURA_ENDPOINT", "https://mainnet.infura.io/v3")
        monkeypatch.setenv("INFURA_KEY", "abc")
        monkeypatch.setenv("API_VERSION", "v2")
        monkeypatch.setenv("GRACEFUL_TIMEOUT", "1m")
        monkeypatch.setenv("ENABLED_SERVICES", "blocks,send")

        settings = Settings()

        assert settings.host == "127.0.0.1"
        assert settings.port == 8080
        assert settings.upstream_url == "https://mainnet.infura.io/v3/abc"
        assert settings.version_prefix == "/v2"
        assert settings.graceful_timeout == 60.0
        assert settings.service_list == ["blocks", "send"]

    def test_builtin_defaults(self, monkeypatch):
        for name in ("API_VERSION", "GRACEFUL_TIMEOUT", "RPC_TIMEOUT", "ENABLED_SERVICES", "PORT", "LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.api_version == "v1"
        assert settings.port == 3333
        assert settings.graceful_timeout == 15.0
        assert settings.rpc_timeout == 15.0
        assert settings.service_list == ["blocks", "transactions"]
        assert settings.log_file == ""

    @pytest.mark.parametrize(
        "endpoint,key,expected",
        [
            ("https://mainnet.infura.io/v3", "abc", "https://mainnet.infura.io/v3/abc"),
            ("https://mainnet.infura.io/v3/", "abc", "https://mainnet.infura.io/v3/abc"),
            ("http://localhost:8545", "", "http://localhost:8545"),
            ("", "", ""),
        ],
    )
    def test_upstream_url(self, endpoint, key, expected):
        assert Settings(endpoint=endpoint, key=key).upstream_url == expected

    @pytest.mark.parametrize("version,prefix", [("v1", "/v1"), ("/v1/", "/v1"), ("", ""), ("api/v3", "/api/v3")])
    def test_version_prefix(self, version, prefix):
        assert Settings(api_version=version).version_prefix == prefix

    def test_service_list_drops_blanks_and_duplicates(self):
        settings = Settings(enabled_services="Blocks, ,transactions,blocks,")
        assert settings.service_list == ["blocks", "transactions"]

    def test_cors_origins(self):
        assert Settings(cors_origins="https://a.test, https://b.test").cors_origin_list == [
            "https://a.test",
            "https://b.test",
        ]


class TestParseArgs:
    def test_flags_override_base(self):
        base = Settings(host="0.0.0.0", port=3333, endpoint="https://env.test", key="env", api_version="v1")

        settings = parse_args(
            [
                "--listening-ip", "127.0.0.1",
                "--listening-port", "9000",
                "--service-key", "flag",
                "--graceful-timeout", "30s",
                "--services", "blocks,send",
            ],
            base=base,
        )

        assert settings.host == "127.0.0.1"
        assert settings.port == 9000
        assert settings.endpoint == "https://env.test"
        assert settings.key == "flag"
        assert settings.graceful_timeout == 30.0
        assert settings.service_list == ["blocks", "send"]
        # base is left untouched
        assert base.port == 3333

    def test_no_flags_keeps_base(self):
        base = Settings(endpoint="https://env.test", key="env")
        assert parse_args([], base=base) == base

    def test_invalid_duration_is_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--graceful-timeout", "soon"], base=Settings())

    def test_reads_environment_without_base(self, monkeypatch):
        monkeypatch.setenv("INFURA_ENDPOINT", "https://env.test")
        monkeypatch.setenv("INFURA_KEY", "env")
        settings = parse_args(["--api-version", "v9"])
        assert settings.upstream_url == "https://env.test/env"
        assert settings.version_prefix == "/v9"
