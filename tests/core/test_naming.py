import pytest

from esodm.core.naming import (
    PROPERTY_NAME_STRATEGY,
    CallableFieldNamingStrategy,
    CamelCaseFieldNamingStrategy,
    FieldNamingStrategy,
    PropertyNameFieldNamingStrategy,
    SnakeCaseFieldNamingStrategy,
    naming_strategy_from_name,
)


def test_identity_strategy_returns_input() -> None:
    assert PROPERTY_NAME_STRATEGY.resolve("withoutCustomFieldName") == "withoutCustomFieldName"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("withoutCustomFieldName", "without_custom_field_name"),
        ("firstName", "first_name"),
        ("id", "id"),
        ("already_snake", "already_snake"),
        ("URLValue", "url_value"),
        ("version2Field", "version2_field"),
    ],
)
def test_snake_case_inserts_underscores_at_case_boundaries(name: str, expected: str) -> None:
    assert SnakeCaseFieldNamingStrategy().resolve(name) == expected


def test_camel_case_strategy() -> None:
    strategy = CamelCaseFieldNamingStrategy()
    assert strategy.resolve("first_name") == "firstName"
    assert strategy.resolve("_private_field") == "_privateField"
    assert strategy.resolve("plain") == "plain"


def test_callable_strategy_wraps_function() -> None:
    strategy = CallableFieldNamingStrategy(str.upper)
    assert strategy.resolve("title") == "TITLE"
    assert isinstance(strategy, FieldNamingStrategy)


def test_strategy_from_name() -> None:
    assert isinstance(naming_strategy_from_name("property_name"), PropertyNameFieldNamingStrategy)
    assert isinstance(naming_strategy_from_name("snake_case"), SnakeCaseFieldNamingStrategy)
    with pytest.raises(ValueError, match="field naming strategy"):
        naming_strategy_from_name("kebab_case")
