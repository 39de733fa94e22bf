import pytest

from wcdiag.models.types import Position, Range, RuleName, Severity

from helpers import diagnose, make_manifest


def rules_of(diagnostics):
    return [d.rule for d in diagnostics]


def test_tags_without_hyphen_are_never_checked():
    assert diagnose('<div foo="bar"><p size="huge"></p><badge pill="x"></badge></div>') == []


def test_unknown_element_at_tag_name():
    (diagnostic,) = diagnose("<unknown-el></unknown-el>")

    assert diagnostic.rule is RuleName.UNKNOWN_ELEMENT
    assert diagnostic.severity is Severity.HINT
    assert diagnostic.range == Range(Position(0, 1), Position(0, 11))


def test_enum_mismatch_reported_at_value():
    (diagnostic,) = diagnose('<my-badge size="medium"></my-badge>')

    assert diagnostic.rule is RuleName.INVALID_ATTRIBUTE_VALUE
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.range == Range(Position(0, 16), Position(0, 22))
    assert "'small' | 'large'" in diagnostic.message


def test_enum_member_and_empty_value_accepted():
    assert diagnose('<my-badge size="large"></my-badge><my-badge size=""></my-badge>') == []


@pytest.mark.parametrize("attribute", ["pill", 'pill=""', 'pill="true"', 'pill="false"'])
def test_valid_boolean_values(attribute):
    assert diagnose(f"<my-badge {attribute}></my-badge>") == []


@pytest.mark.parametrize("value", ["yes", "1", "TRUE", "pill"])
def test_invalid_boolean_values(value):
    assert rules_of(diagnose(f'<my-badge pill="{value}"></my-badge>')) == [RuleName.INVALID_BOOLEAN]


@pytest.mark.parametrize("value", ["3", "-2.5", "1e3", ".5", "0x1F", "Infinity", " 7 ", ""])
def test_valid_numbers(value):
    assert diagnose(f'<my-badge count="{value}"></my-badge>') == []


@pytest.mark.parametrize("value", ["abc", "3px", "1,000", "--1"])
def test_invalid_numbers(value):
    assert rules_of(diagnose(f'<my-badge count="{value}"></my-badge>')) == [RuleName.INVALID_NUMBER]


def test_open_and_unchecked_types_accept_anything():
    assert diagnose('<my-badge label="anything at all" variant="whatever"></my-badge>') == []


def test_template_literal_type_is_not_an_enum():
    manifest = make_manifest("x-box", attributes=[{"name": "width", "type": {"text": "`${number}px`"}}])

    assert diagnose('<x-box width="10px"></x-box>', manifest=manifest) == []
    assert diagnose('<x-box width="wide"></x-box>', manifest=manifest) == []


def test_duplicate_reported_once_at_second_occurrence():
    diagnostics = diagnose('<my-badge label="1" pill label="2"></my-badge>')

    (duplicate,) = [d for d in diagnostics if d.rule is RuleName.DUPLICATE_ATTRIBUTE]
    assert duplicate.range == Range(Position(0, 25), Position(0, 30))
    assert len(diagnostics) == 1


def test_binding_variants_are_not_duplicates_of_plain_names():
    assert diagnose('<my-badge .label=${a} label="x"></my-badge>') == []


def test_bound_duplicates_are_reported():
    assert rules_of(diagnose("<my-badge @click=${a} @click=${b}></my-badge>")) == [RuleName.DUPLICATE_ATTRIBUTE]


def test_bound_attributes_skip_value_and_unknown_checks():
    html = "<my-badge .size=${x} ?pill=${y} @click=${z} .unknownProp=${q} :count=${n}></my-badge>"
    assert diagnose(html) == []


def test_unknown_attribute_respects_global_attributes():
    html = '<my-badge foo="1" id="x" class="c" data-x="1" aria-label="l" onclick="f()" slot="s"></my-badge>'
    (diagnostic,) = diagnose(html)

    assert diagnostic.rule is RuleName.UNKNOWN_ATTRIBUTE
    assert diagnostic.range == Range(Position(0, 10), Position(0, 13))


def test_unknown_element_attributes_are_not_checked():
    assert rules_of(diagnose('<other-el size="medium" foo></other-el>')) == [RuleName.UNKNOWN_ELEMENT]


def test_deprecations_use_schema_message():
    element, attribute = diagnose('<old-card></old-card><my-badge tone="x"></my-badge>')

    assert element.rule is RuleName.DEPRECATED_ELEMENT
    assert element.severity is Severity.WARNING
    assert attribute.rule is RuleName.DEPRECATED_ATTRIBUTE
    assert attribute.message.endswith("Use variant instead.")


def test_off_rules_are_not_evaluated():
    raw = {"diagnosticSeverity": {"invalidAttributeValue": "off", "unknownElement": "off"}}
    assert diagnose('<my-badge size="medium"></my-badge><nope-el></nope-el>', raw) == []


def test_severity_comes_from_owning_library():
    raw = {
        "diagnosticSeverity": {"invalidAttributeValue": "info"},
        "libraries": {"ui": {"diagnosticSeverity": {"invalidAttributeValue": "warning"}}},
    }

    (from_library,) = diagnose('<my-badge size="medium"></my-badge>', raw, library="ui")
    (from_root,) = diagnose('<my-badge size="medium"></my-badge>', raw)

    assert from_library.severity is Severity.WARNING
    assert from_root.severity is Severity.INFO


def test_multiline_tag_ranges_and_document_order():
    html = '<section>\n  <nope-el></nope-el>\n  <my-badge\n    pill="nah"\n    size="medium"\n  ></my-badge>\n</section>'
    diagnostics = diagnose(html)

    assert rules_of(diagnostics) == [
        RuleName.UNKNOWN_ELEMENT,
        RuleName.INVALID_BOOLEAN,
        RuleName.INVALID_ATTRIBUTE_VALUE,
    ]
    assert diagnostics[2].range == Range(Position(4, 10), Position(4, 16))


def test_lsp_record_shape():
    (diagnostic,) = diagnose('<my-badge size="medium"></my-badge>')
    record = diagnostic.to_dict()

    assert record["code"] == "invalidAttributeValue"
    assert record["severity"] == 1
    assert record["source"] == "wcdiag"
    assert record["range"] == {"start": {"line": 0, "character": 16}, "end": {"line": 0, "character": 22}}
