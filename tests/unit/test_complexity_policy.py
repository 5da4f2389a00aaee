import pytest

from figmaflow.domain.policy.complexity_policy import ComplexityPolicy, calculate_complexity

ORDER = {"simple": 0, "medium": 1, "complex": 2}


def test_thresholds():
    assert calculate_complexity(0, 0) == "simple"
    assert calculate_complexity(49, 0) == "simple"
    assert calculate_complexity(50, 0) == "medium"
    assert calculate_complexity(199, 0) == "medium"
    assert calculate_complexity(200, 0) == "complex"


def test_components_are_weighted():
    assert calculate_complexity(10, 8) == "medium"
    assert calculate_complexity(10, 38) == "complex"


def test_monotonic_in_nodes_and_components():
    for components in range(0, 50, 7):
        previous = 0
        for nodes in range(0, 400, 3):
            current = ORDER[calculate_complexity(nodes, components)]
            assert current >= previous
            previous = current
    for nodes in range(0, 300, 11):
        previous = 0
        for components in range(0, 60):
            current = ORDER[calculate_complexity(nodes, components)]
            assert current >= previous
            previous = current


def test_custom_policy():
    policy = ComplexityPolicy(component_weight=0, simple_below=10, medium_below=20)
    assert policy.classify(9, 100) == "simple"
    assert policy.classify(15, 0) == "medium"
    assert policy.classify(20, 0) == "complex"


def test_invalid_policy_rejected():
    with pytest.raises(ValueError):
        ComplexityPolicy(simple_below=100, medium_below=50)
    with pytest.raises(ValueError):
        ComplexityPolicy(component_weight=-1)
