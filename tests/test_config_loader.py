"""Tests for settings and policy file loading."""

from __future__ import annotations

import pytest

from cspguard.config.loader import (
    CSPSettings,
    build_options,
    get_settings,
    load_directives_file,
)
from cspguard.errors import InvalidDirectivesError, InvalidDirectiveValueError
from cspguard.middleware.csp_builder import normalize_directives
from cspguard.middleware.nonce import nonce_source
from tests.helpers.asgi import make_request


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.report_only is False
        assert settings.directives_file == ""
        assert settings.nonce_directives == []
        assert settings.log_json is False  # set by conftest

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CSP_REPORT_ONLY", "true")
        monkeypatch.setenv("CSP_NONCE_DIRECTIVES", '["script-src"]')
        settings = CSPSettings()
        assert settings.report_only is True
        assert settings.nonce_directives == ["script-src"]

    def test_singleton(self):
        assert get_settings() is get_settings()


class TestLoadDirectivesFile:
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            "report_only: true\n"
            "directives:\n"
            "  defaultSrc: [\"'self'\"]\n"
            "  upgrade-insecure-requests: []\n"
        )
        data = load_directives_file(path)
        assert data == {
            "report_only": True,
            "directives": {"defaultSrc": ["'self'"], "upgrade-insecure-requests": []},
        }

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="nope.yaml"):
            load_directives_file(tmp_path / "nope.yaml")

    def test_empty_file_returns_empty(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_directives_file(path) == {}

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- default-src\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_directives_file(path)


class TestBuildOptions:
    def test_defaults_without_file(self):
        options = build_options(CSPSettings())
        assert options["report_only"] is False
        assert options["directives"]["default-src"] == ["'self'"]
        normalize_directives(options)

    def test_file_report_only_wins(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("reportOnly: true\ndirectives:\n  default-src: \"'none'\"\n")
        options = build_options(CSPSettings(directives_file=str(path), report_only=False))
        assert "report_only" not in options
        assert options["reportOnly"] is True
        assert normalize_directives(options).render() == "default-src 'none'"

    def test_settings_report_only(self):
        options = build_options(CSPSettings(report_only=True))
        assert options["report_only"] is True

    def test_nonce_appended_to_existing_directive(self):
        options = build_options(CSPSettings(nonce_directives=["scriptSrc"]))
        assert options["directives"]["script-src"] == ["'self'", nonce_source]

        request = make_request()
        request.state.csp_nonce = "n0nce"
        rendered = normalize_directives(options).render(request, None)
        assert "script-src 'self' 'nonce-n0nce';" in rendered

    def test_nonce_creates_missing_directive(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("directives:\n  defaultSrc: \"'self'\"\n")
        options = build_options(CSPSettings(directives_file=str(path), nonce_directives=["style-src"]))
        assert options["directives"] == {"defaultSrc": "'self'", "style-src": [nonce_source]}

    def test_nonce_leaves_malformed_value_for_normalizer(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("directives:\n  default-src: null\n")
        options = build_options(CSPSettings(directives_file=str(path), nonce_directives=["default-src"]))
        assert options["directives"]["default-src"] is None
        with pytest.raises(InvalidDirectiveValueError):
            normalize_directives(options)

    def test_missing_policy_file_fails_instead_of_defaults(self, tmp_path):
        settings = CSPSettings(directives_file=str(tmp_path / "typo.yaml"))
        with pytest.raises(FileNotFoundError):
            build_options(settings)

    def test_list_directives_reported_by_normalizer(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("directives:\n  - default-src 'self'\n")
        options = build_options(CSPSettings(directives_file=str(path), nonce_directives=["script-src"]))

        assert options["directives"] == ["default-src 'self'"]
        assert options["report_only"] is False
        with pytest.raises(InvalidDirectivesError):
            normalize_directives(options)
