import pytest

from autoformat.errors import ConfigurationError
from autoformat.options import AutoFormatOptions
from autoformat.templates import (
    DEFAULT_TEMPLATE_PACK,
    TemplateRegistry,
    apply_template_settings,
    default_registry,
    load_template_pack,
    parse_templates,
)


def test_builtin_templates_load():
    reg = default_registry()
    assert reg.ids() == ["standard", "academic", "resume", "formal"]
    academic = reg.get("academic")
    assert academic.rules.font_family == "Times New Roman"
    assert academic.rules.line_spacing == 2.0
    assert academic.rules.heading_styles[1].font_size == 14
    assert reg.get("resume").rules.margins.left == 54


def test_template_without_images_toggle_keeps_manual_setting():
    current = AutoFormatOptions(images=False, mode="suggest")
    merged = apply_template_settings(current, "academic")
    assert merged.images is False
    assert merged.citations is True
    assert merged.mode == "suggest"
    assert merged.template_id == "academic"


def test_template_with_images_toggle_overrides():
    current = AutoFormatOptions(images=False, accessibility=True)
    merged = apply_template_settings(current, "standard")
    assert merged.images is True
    assert merged.accessibility is True  # not set by the template
    assert merged.template_id == "standard"


def test_merge_does_not_mutate_caller_options():
    current = AutoFormatOptions(images=False)
    apply_template_settings(current, "standard")
    assert current.images is False
    assert current.template_id == "standard"


def test_unknown_template_rejected():
    with pytest.raises(ConfigurationError):
        apply_template_settings(AutoFormatOptions(), "nope")


def test_malformed_pack_rejected():
    pack = {"templates": [{"id": "x", "name": "X", "rules": {"font_family": "Arial"}}]}
    with pytest.raises(ConfigurationError):
        parse_templates(pack)


def test_unknown_toggle_in_pack_rejected():
    pack = load_template_pack(DEFAULT_TEMPLATE_PACK)
    pack["templates"][0]["settings"]["sparkles"] = True
    with pytest.raises(ConfigurationError):
        parse_templates(pack)


def test_duplicate_ids_rejected():
    templates = parse_templates(load_template_pack(DEFAULT_TEMPLATE_PACK))
    with pytest.raises(ConfigurationError):
        TemplateRegistry(templates + templates[:1])


def test_options_validation():
    with pytest.raises(ConfigurationError):
        AutoFormatOptions(mode="yolo").validate()
    with pytest.raises(ConfigurationError):
        AutoFormatOptions.from_dict({"fonts": True, "colour": "blue"})
    with pytest.raises(ConfigurationError):
        AutoFormatOptions.from_dict({"fonts": "yes"})
    opts = AutoFormatOptions.from_dict({"mode": "auto-fix", "margins": True})
    assert opts.mode == "auto-fix" and opts.margins is True
