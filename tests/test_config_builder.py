"""Tests for turning form state into a comparison request."""

import json

import pytest

from urlcompare.core.config_builder import (
    apply_defaults,
    build_config,
    collect_headers,
    collect_tokens,
    parse_max_iterations,
    parse_token_values,
    validate_config,
)
from urlcompare.models import KeyValueRow, TestType, UiState


def rows(*pairs):
    return [KeyValueRow(key=k, value=v) for k, v in pairs]


def make_state(**overrides):
    fields = dict(
        test_type=TestType.REST,
        operation_name="getAccount",
        method="POST",
        url1="http://a/api/resource",
        url2="http://b/api/resource",
        payload_template="templates/account.json",
        iteration_controller="ONE_BY_ONE",
        max_iterations="25",
        client_id="client",
        client_secret="secret",
        headers=rows(("Content-Type", "application/json")),
        tokens=rows(("account", "123; 456; ")),
    )
    fields.update(overrides)
    return UiState(**fields)


class TestTokenValues:
    @pytest.mark.parametrize("raw, expected", [
        ("a; b; ", ["a", "b"]),
        ("a;b", ["a", "b"]),
        (" 1 ;2;3;", ["1", "2", "3"]),
        ("a;;b", ["a", "", "b"]),
        ("", []),
        ("007", ["007"]),
    ])
    def test_split_and_trim(self, raw, expected):
        assert parse_token_values(raw) == expected

    def test_empty_value_omits_key(self):
        assert collect_tokens(rows(("account", ""), ("id", "1"))) == {"id": ["1"]}

    def test_values_stay_strings(self):
        assert collect_tokens(rows(("n", "1; 2.5"))) == {"n": ["1", "2.5"]}

    def test_blank_key_contributes_nothing(self):
        assert collect_tokens(rows(("  ", "1;2"))) == {}

    def test_keys_are_trimmed_and_last_row_wins(self):
        assert collect_tokens(rows((" id ", "1"), ("id", "2"))) == {"id": ["2"]}


class TestHeaders:
    def test_blank_keys_are_dropped(self):
        assert collect_headers(rows(("", "x"), ("   ", "y"))) == {}

    def test_keys_and_values_are_trimmed(self):
        assert collect_headers(rows((" X-Trace ", " abc "))) == {"X-Trace": "abc"}

    def test_duplicate_key_last_row_wins(self):
        assert collect_headers(rows(("Accept", "a"), ("Accept", "b"))) == {"Accept": "b"}


class TestMaxIterations:
    @pytest.mark.parametrize("raw, expected", [
        ("25", 25), (25, 25), ("", 100), (None, 100), ("abc", 100),
        ("0", 100), ("-5", 100), ("12abc", 12), (" 7 ", 7),
    ])
    def test_parse(self, raw, expected):
        assert parse_max_iterations(raw) == expected


class TestBuildConfig:
    def test_request_shape(self):
        payload = build_config(make_state()).to_payload()

        assert payload["testType"] == "REST"
        assert payload["maxIterations"] == 25
        assert payload["iterationController"] == "ONE_BY_ONE"
        assert payload["comparisonMode"] == "LIVE"
        assert payload["tokens"] == {"account": ["123", "456"]}
        assert "baseline" not in payload

        api1 = payload["rest"]["api1"]
        assert api1["baseUrl"] == "http://a/api/resource"
        assert api1["authentication"] == {"tokenUrl": None, "clientId": "client", "clientSecret": "secret"}
        assert api1["operations"] == [{
            "name": "getAccount",
            "methods": ["POST"],
            "headers": {"Content-Type": "application/json"},
            "payloadTemplatePath": "templates/account.json",
        }]
        assert payload["rest"]["api2"]["baseUrl"] == "http://b/api/resource"

    def test_rest_and_soap_blocks_are_identical(self):
        payload = build_config(make_state(test_type=TestType.SOAP)).to_payload()
        assert payload["testType"] == "SOAP"
        assert payload["rest"] == payload["soap"]

    def test_defaults_for_blank_fields(self):
        payload = build_config(UiState(url1="http://a", method="")).to_payload()
        op = payload["rest"]["api1"]["operations"][0]
        assert op["name"] == "web-operation"
        assert op["methods"] == ["POST"]
        assert op["payloadTemplatePath"] is None
        assert payload["maxIterations"] == 100
        assert payload["rest"]["api1"]["authentication"] == {
            "tokenUrl": None, "clientId": None, "clientSecret": None,
        }

    def test_whitespace_operation_name_uses_default(self):
        config = build_config(make_state(operation_name="   "))
        assert config.rest.api1.operations[0].name == "web-operation"

    def test_is_deterministic(self):
        first = json.dumps(build_config(make_state()).to_payload())
        second = json.dumps(build_config(make_state()).to_payload())
        assert first == second

    def test_endpoints_do_not_share_mutable_operation(self):
        config = build_config(make_state())
        config.rest.api1.operations[0].headers["X-Extra"] = "1"
        assert "X-Extra" not in config.rest.api2.operations[0].headers


class TestValidateConfig:
    def test_missing_url1_fails_with_alert(self):
        alerts = []
        config = build_config(make_state(url1="", url2="http://b"))
        assert validate_config(config, alert=alerts.append) is False
        assert alerts == ["URL 1 is required"]

    def test_url2_may_be_empty(self):
        alerts = []
        config = build_config(make_state(url1="http://a", url2=""))
        assert validate_config(config, alert=alerts.append) is True
        assert alerts == []


class TestApplyDefaults:
    DEFAULTS = {
        "testType": "REST",
        "iterationController": "ALL_COMBINATIONS",
        "maxIterations": 50,
        "tokens": {"account": ["1", 2], "skip": "not-a-list"},
        "rest": {
            "api1": {
                "baseUrl": "http://a",
                "authentication": {"clientId": "cid", "clientSecret": "sec"},
                "operations": [{
                    "name": "op",
                    "methods": ["GET"],
                    "headers": {"Accept": "application/json"},
                    "payloadTemplatePath": "p.json",
                }],
            },
            "api2": {"baseUrl": "http://b"},
        },
    }

    def test_prefills_form(self):
        state = apply_defaults(UiState(), self.DEFAULTS)
        assert state.url1 == "http://a"
        assert state.url2 == "http://b"
        assert state.client_id == "cid"
        assert state.client_secret == "sec"
        assert state.operation_name == "op"
        assert state.method == "GET"
        assert state.payload_template == "p.json"
        assert state.max_iterations == "50"
        assert state.iteration_controller == "ALL_COMBINATIONS"
        assert state.headers == rows(("Accept", "application/json"))
        assert state.tokens == rows(("account", "1; 2"))

    def test_soap_uses_legacy_soap_apis_key(self):
        defaults = {
            "testType": "SOAP",
            "soapApis": {"api1": {"baseUrl": "http://s1"}, "api2": {"baseUrl": "http://s2"}},
        }
        state = apply_defaults(UiState(), defaults)
        assert state.test_type is TestType.SOAP
        assert (state.url1, state.url2) == ("http://s1", "http://s2")

    def test_unknown_method_is_ignored(self):
        defaults = {"rest": {"api1": {"baseUrl": "x", "operations": [{"methods": ["BREW"]}]},
                             "api2": {"baseUrl": "y"}}}
        assert apply_defaults(UiState(method="PUT"), defaults).method == "PUT"

    def test_missing_api2_skips_endpoints(self):
        state = apply_defaults(UiState(url1="keep"), {"rest": {"api1": {"baseUrl": "x"}}})
        assert state.url1 == "keep"

    @pytest.mark.parametrize("defaults", [None, {}])
    def test_no_defaults(self, defaults):
        original = UiState(url1="http://a")
        assert apply_defaults(original, defaults) == original

    def test_round_trips_through_build(self):
        config = build_config(apply_defaults(UiState(), self.DEFAULTS))
        assert config.tokens == {"account": ["1", "2"]}
        assert config.rest.api1.operations[0].methods == ["GET"]

    @pytest.mark.parametrize("defaults", [
        {"rest": {"api1": "http://a", "api2": "http://b"}},
        {"rest": "http://a"},
        {"rest": ["http://a", "http://b"]},
        {"rest": {"api1": {"baseUrl": "x", "authentication": "basic"}, "api2": {"baseUrl": "y"}}},
        {"rest": {"api1": {"baseUrl": "x", "operations": "op"}, "api2": {"baseUrl": "y"}}},
        {"rest": {"api1": {"baseUrl": "x", "operations": ["op"]}, "api2": {"baseUrl": "y"}}},
        {"rest": {"api1": {"baseUrl": "x", "operations": [{"headers": []}]}, "api2": {"baseUrl": "y"}}},
        {"rest": {"api1": {"baseUrl": "x", "operations": [{"methods": "GET"}]}, "api2": {"baseUrl": "y"}}},
        {"tokens": ["a", "b"]},
        ["not", "an", "object"],
    ])
    def test_malformed_document_is_skipped(self, defaults):
        original = UiState(method="PUT", headers=rows(("Accept", "text/plain")))
        state = apply_defaults(original, defaults)
        assert state.method == "PUT"
        assert state.headers == original.headers
        assert state.client_id == ""

    def test_malformed_parts_do_not_hide_valid_ones(self):
        defaults = {
            "maxIterations": 5,
            "rest": {"api1": {"baseUrl": "http://a", "authentication": None,
                              "operations": [{"name": "op", "headers": "Accept: */*"}]},
                     "api2": {"baseUrl": "http://b"}},
        }
        state = apply_defaults(UiState(), defaults)
        assert (state.url1, state.url2) == ("http://a", "http://b")
        assert state.operation_name == "op"
        assert state.max_iterations == "5"
        assert state.headers == []
