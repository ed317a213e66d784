import copy

from template_studio.core.merge import deep_merge


def test_empty_override_returns_copy_of_base() -> None:
    base = {"colors": {"primary": "#000"}, "layout": {"columns": 1}}
    result = deep_merge(base, {})
    assert result == base
    assert result is not base
    assert deep_merge(base, None) == base


def test_empty_base_returns_copy_of_override() -> None:
    override = {"colors": {"primary": "#fff"}}
    result = deep_merge({}, override)
    assert result == override
    result["colors"]["primary"] = "#123"
    assert override["colors"]["primary"] == "#fff"
    assert deep_merge(None, override) == override


def test_nested_keys_merge_and_untouched_keys_survive() -> None:
    base = {"colors": {"primary": "#000", "text": "#111"}, "layout": {"columns": 2}}
    override = {"colors": {"primary": "#fff"}}
    assert deep_merge(base, override) == {
        "colors": {"primary": "#fff", "text": "#111"},
        "layout": {"columns": 2},
    }


def test_inputs_are_not_mutated() -> None:
    base = {"a": {"b": {"c": 1}}, "tags": ["x"]}
    override = {"a": {"b": {"d": 2}}, "tags": ["y"]}
    base_before = copy.deepcopy(base)
    override_before = copy.deepcopy(override)

    result = deep_merge(base, override)
    result["a"]["b"]["c"] = 99

    assert base == base_before
    assert override == override_before


def test_lists_replace_instead_of_concatenating() -> None:
    base = {"icons": {"set": ["a", "b"]}}
    assert deep_merge(base, {"icons": {"set": ["c"]}}) == {"icons": {"set": ["c"]}}


def test_explicit_none_clears_value() -> None:
    base = {"effects": {"shadow": "sm", "rounded": True}}
    assert deep_merge(base, {"effects": {"shadow": None}}) == {
        "effects": {"shadow": None, "rounded": True}
    }


def test_mapping_override_replaces_scalar_base() -> None:
    base = {"spacing": "compact"}
    assert deep_merge(base, {"spacing": {"section": "1rem"}}) == {"spacing": {"section": "1rem"}}


def test_disjoint_overrides_associate() -> None:
    a = {"colors": {"primary": "#000"}, "layout": {"columns": 1}}
    b = {"colors": {"accent": "#f00"}}
    c = {"typography": {"fontFamily": "Inter"}}
    left = deep_merge(deep_merge(a, b), c)
    right = deep_merge(a, deep_merge(b, c))
    assert left == right


def test_arbitrary_depth() -> None:
    base = {"a": {"b": {"c": {"d": {"e": 1, "f": 2}}}}}
    result = deep_merge(base, {"a": {"b": {"c": {"d": {"e": 5}}}}})
    assert result == {"a": {"b": {"c": {"d": {"e": 5, "f": 2}}}}}
