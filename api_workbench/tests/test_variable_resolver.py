"""
Property-based tests for the variable resolver.

Covers placeholder detection, scope precedence, dynamic variables and
left-in-place unknown names.
"""

import pytest
from hypothesis import given, strategies as st, settings

from api_workbench.schemas.collection import Collection
from api_workbench.schemas.environment import Environment
from api_workbench.schemas.request import RestRequest
from api_workbench.schemas.variables import DataGeneratorType, DynamicVariable
from api_workbench.services.variable_resolver import (
    contains_variables,
    extract_variable_names,
    get_variable_value,
    resolve,
    resolve_dict,
    set_variable_value,
)


# Valid variable names: letter or underscore, then letters, digits, underscores
variable_name_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"),
    min_size=1,
    max_size=20,
).filter(lambda s: s[0].isalpha() or s[0] == "_")

variable_value_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-./:"),
    min_size=0,
    max_size=40,
)

plain_text_strategy = st.text(max_size=100).filter(lambda s: "{{" not in s and "}}" not in s)


def _env(**variables) -> Environment:
    return Environment(name="test", variables=variables)


class TestPlaceholderDetection:
    @given(var_names=st.lists(variable_name_strategy, min_size=1, max_size=5, unique=True))
    @settings(max_examples=100)
    def test_extracts_every_distinct_name_in_order(self, var_names: list[str]):
        template = " ".join("{{" + name + "}}" for name in var_names + var_names)

        assert extract_variable_names(template) == var_names
        assert contains_variables(template)

    @given(text=plain_text_strategy)
    @settings(max_examples=100)
    def test_no_placeholders_in_plain_text(self, text: str):
        assert extract_variable_names(text) == []
        assert not contains_variables(text)

    def test_whitespace_inside_braces_is_allowed(self):
        assert extract_variable_names("{{ host }}/{{port}}") == ["host", "port"]

    @pytest.mark.parametrize("text", ["{{1abc}}", "{{a-b}}", "{{}}", "{ {a} }", "{{a b}}"])
    def test_invalid_names_are_not_placeholders(self, text: str):
        assert not contains_variables(text)
        assert resolve(text, _env(a="x")) == text

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty_input(self, text):
        assert not contains_variables(text)
        assert extract_variable_names(text) == []
        assert resolve(text, _env()) == text


class TestResolution:
    @given(text=plain_text_strategy, variables=st.dictionaries(variable_name_strategy, variable_value_strategy))
    @settings(max_examples=100)
    def test_resolution_is_idempotent_without_placeholders(self, text: str, variables: dict):
        env = Environment(name="test", variables=variables)

        once = resolve(text, env)
        assert once == text
        assert resolve(once, env) == once

    @given(name=variable_name_strategy, env_value=variable_value_strategy, col_value=variable_value_strategy)
    @settings(max_examples=100)
    def test_collection_shadows_environment(self, name: str, env_value: str, col_value: str):
        env = Environment(name="env", variables={name: env_value})
        collection = Collection(name="col", variables={name: col_value})

        assert resolve("{{" + name + "}}", env, collection) == col_value
        assert resolve("{{" + name + "}}", env) == env_value

    @given(name=variable_name_strategy)
    @settings(max_examples=100)
    def test_unknown_placeholder_left_verbatim(self, name: str):
        template = "before {{" + name + "}} after"
        assert resolve(template, _env()) == template

    def test_mixed_known_and_unknown(self):
        env = _env(host="localhost")
        assert resolve("http://{{ host }}/{{missing}}", env) == "http://localhost/{{missing}}"

    def test_values_are_not_resolved_again(self):
        env = _env(a="{{b}}", b="deep")
        assert resolve("{{a}}", env) == "{{b}}"

    def test_empty_value_replaces_placeholder(self):
        assert resolve("x{{a}}y", _env(a="")) == "xy"

    def test_resolve_dict_resolves_keys_and_values(self):
        env = _env(name="X-Token", token="abc")
        assert resolve_dict({"{{name}}": "Bearer {{token}}", "Accept": "*/*"}, env) == {
            "X-Token": "Bearer abc",
            "Accept": "*/*",
        }


class TestDynamicVariables:
    def test_static_value_wins_over_dynamic(self):
        env = Environment(
            name="env",
            variables={"id": "static"},
            dynamic_variables=[DynamicVariable(name="id", generator_type=DataGeneratorType.GUID)],
        )
        assert get_variable_value("id", env) == "static"

    def test_collection_dynamic_before_environment_dynamic(self):
        env = Environment(
            name="env",
            dynamic_variables=[DynamicVariable(name="flag", generator_type=DataGeneratorType.EMAIL)],
        )
        collection = Collection(
            name="col",
            dynamic_variables=[DynamicVariable(name="flag", generator_type=DataGeneratorType.BOOLEAN)],
        )
        assert get_variable_value("flag", env, collection) in ("true", "false")

    def test_request_dynamic_consulted_last(self):
        request = RestRequest(
            url="http://x",
            dynamic_variables=[DynamicVariable(name="n", generator_type=DataGeneratorType.INTEGER)],
        )
        value = get_variable_value("n", _env(), request=request)
        assert value is not None
        int(value)

    def test_dynamic_value_regenerated_per_placeholder(self):
        env = Environment(
            name="env",
            dynamic_variables=[DynamicVariable(name="id", generator_type=DataGeneratorType.UUID)],
        )
        first, second = resolve("{{id}} {{id}}", env).split(" ")
        assert first != second


class TestSetVariable:
    def test_writes_to_environment_by_default(self):
        env, collection = _env(), Collection(name="col")
        set_variable_value("token", "abc", env, collection)
        assert env.variables == {"token": "abc"}
        assert collection.variables == {}

    def test_writes_to_collection_when_requested(self):
        env, collection = _env(), Collection(name="col")
        set_variable_value("token", "abc", env, collection, save_to_collection=True)
        assert collection.variables == {"token": "abc"}
        assert env.variables == {}

    def test_falls_back_to_environment_without_collection(self):
        env = _env()
        set_variable_value("token", "abc", env, None, save_to_collection=True)
        assert env.variables == {"token": "abc"}
