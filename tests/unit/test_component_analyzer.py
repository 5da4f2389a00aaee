import pytest

from figmaflow.domain.models.component import ComponentProperty, ComponentVariant, ParsedComponent
from figmaflow.domain.services.component_analyzer import (
    SubtreeMetrics,
    analyze_components,
    analyze_variant,
    assess_complexity,
    assess_reusability,
    categorize,
    has_good_naming,
    identify_patterns,
)
from figmaflow.domain.services.document_parser import parse_document


def _component(name, description="", props=(), variants=()):
    return ParsedComponent(
        id="1:1",
        name=name,
        description=description,
        category="General",
        props=tuple(props),
        variants=tuple(variants),
    )


def _variants(count):
    return [ComponentVariant(name=f"State={i}", properties={"State": str(i)}, node_id=f"1:{i}") for i in range(count)]


def test_categorize_by_keywords():
    category = categorize(_component("Primary Button"))
    assert category.primary == "buttons"
    assert category.confidence == pytest.approx(1 / 3)
    assert categorize(_component("Avatar")).primary == "media"


def test_categorize_falls_back_to_general():
    category = categorize(_component("Xyz"))
    assert category.primary == "general"
    assert category.secondary == ()
    assert category.confidence == 0.3


def test_complexity_levels():
    simple = assess_complexity(_component("A"), SubtreeMetrics(0, 0, 0))
    assert simple.score == 0
    assert simple.level == "simple"
    assert len(simple.factors) == 4

    complex_ = assess_complexity(_component("A", variants=_variants(5)), SubtreeMetrics(10, 5, 20))
    assert complex_.score == pytest.approx(0.75)
    assert complex_.level == "complex"


def test_naming_convention():
    assert has_good_naming("PrimaryButton")
    assert not has_good_naming("Btn")
    assert not has_good_naming("primary button")


def test_reusability_rewards_props_variants_naming_docs():
    component = _component(
        "PrimaryButton",
        description="Main call to action",
        props=[ComponentProperty(name="label", type="text")],
        variants=_variants(2),
    )
    complexity = assess_complexity(component, SubtreeMetrics(0, 0, 0))
    reusability = assess_reusability(component, complexity)
    assert reusability.score == pytest.approx(1.0)
    assert reusability.level == "high"
    assert len(reusability.reasons) == 4


def test_reusability_penalizes_complexity():
    component = _component("x", variants=_variants(5))
    complexity = assess_complexity(component, SubtreeMetrics(10, 5, 20))
    reusability = assess_reusability(component, complexity)
    assert reusability.score == pytest.approx(0.45)
    assert reusability.level == "medium"


def test_patterns_sorted_by_confidence():
    patterns = identify_patterns(_component("Card Button"))
    assert [p.name for p in patterns] == ["Card Pattern", "Button Pattern"]
    assert patterns[0].confidence == pytest.approx(1 / 3)


def test_analyze_variant():
    variant = ComponentVariant(name="Size=Large, State=Hover", properties={"Size": "Large", "State": "Hover"}, node_id="1:2")
    assert analyze_variant(variant).complexity == pytest.approx(0.2)


def test_estimate_fallback():
    assert SubtreeMetrics.estimate(_component("A")) == SubtreeMetrics(5, 2, 10)


def test_analyze_components_uses_parsed_subtree():
    document = parse_document(
        {
            "id": "0:1",
            "type": "CANVAS",
            "children": [
                {
                    "id": "2:1",
                    "name": "Hero Image",
                    "type": "COMPONENT",
                    "children": [
                        {
                            "id": "2:2",
                            "type": "RECTANGLE",
                            "fills": [{"type": "IMAGE"}],
                            "absoluteBoundingBox": {"x": 0, "y": 0, "width": 2400, "height": 1600},
                        },
                        {"id": "2:3", "type": "TEXT", "characters": "Caption"},
                    ],
                }
            ],
        }
    )
    (analysis,) = analyze_components(document)
    assert analysis.id == "2:1"
    assert analysis.category.primary == "media"
    assert analysis.complexity.factors[0].description == "Component has 2 child elements"
    suggestion_types = {s.type for s in analysis.suggestions}
    assert "performance" in suggestion_types
    assert "accessibility" in suggestion_types
    assert "design" in suggestion_types
    assert analysis.to_dict()["name"] == "Hero Image"
