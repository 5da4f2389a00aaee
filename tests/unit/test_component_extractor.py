from figmaflow.domain.services.component_extractor import (
    categorize_component,
    extract_component_properties,
    extract_components,
    infer_property_type,
    parse_variant_name,
)


def test_categorize_component():
    assert categorize_component("Primary Button") == "Buttons"
    assert categorize_component("Text Field") == "Forms"
    assert categorize_component("Search input") == "Forms"
    assert categorize_component("Product Card") == "Cards"
    assert categorize_component("Confirm Dialog") == "Overlays"
    assert categorize_component("Navbar") == "Navigation"
    assert categorize_component("Avatar") == "General"


def test_first_matching_category_wins():
    assert categorize_component("Card Button") == "Buttons"


def test_parse_variant_name():
    assert parse_variant_name("Size=Large, State=Hover") == {"Size": "Large", "State": "Hover"}
    assert parse_variant_name("Default") == {}


def test_infer_property_type():
    assert infer_property_type({"type": "BOOLEAN", "defaultValue": False}) == "boolean"
    assert infer_property_type({"type": "TEXT", "defaultValue": "Label"}) == "text"
    assert infer_property_type({"type": "VARIANT", "defaultValue": "Small"}) == "variant"
    assert infer_property_type({"type": "INSTANCE_SWAP", "defaultValue": "1:2"}) == "instance"
    assert infer_property_type({"defaultValue": True}) == "boolean"
    assert infer_property_type({"defaultValue": 3}) == "text"


def test_declared_kind_wins_over_default_value_type():
    assert infer_property_type({"type": "TEXT", "defaultValue": True}) == "text"
    assert infer_property_type({"type": "VARIANT", "defaultValue": False}) == "variant"
    assert infer_property_type({"type": "UNKNOWN", "defaultValue": True}) == "boolean"


def test_extract_component_properties():
    node = {
        "componentPropertyDefinitions": {
            "label": {"type": "TEXT", "defaultValue": "Click", "description": "Button text"},
            "disabled": {"type": "BOOLEAN", "defaultValue": False},
            "broken": "not a definition",
        }
    }
    props = extract_component_properties(node)
    assert [p.name for p in props] == ["label", "disabled"]
    assert props[0].description == "Button text"
    assert props[1].type == "boolean"
    assert props[1].default_value is False


def test_missing_metadata_yields_empty_fields():
    (component,) = extract_components({"type": "COMPONENT", "id": "1:1", "name": "Badge"})
    assert component.description == ""
    assert component.props == ()
    assert component.variants == ()


def test_component_set_variants_in_document_order():
    root = {
        "type": "CANVAS",
        "children": [
            {
                "type": "COMPONENT_SET",
                "id": "1:0",
                "name": "Button",
                "children": [
                    {"type": "COMPONENT", "id": "1:1", "name": "Size=Small"},
                    {"type": "COMPONENT", "id": "1:2", "name": "Size=Large"},
                ],
            },
            {
                "type": "FRAME",
                "id": "2:0",
                "children": [{"type": "COMPONENT", "id": "2:1", "name": "Modal"}],
            },
        ],
    }
    components = extract_components(root)
    assert [c.id for c in components] == ["1:1", "1:2", "2:1"]
    assert [v.node_id for v in components[0].variants] == ["1:1", "1:2"]
    assert components[1].variants[1].properties == {"Size": "Large"}
    assert components[2].variants == ()
    assert components[2].category == "Overlays"
