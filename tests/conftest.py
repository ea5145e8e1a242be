import pytest

from tree import IndicatorNode


def _tree_dicts():
    return [
        {
            "indicator": "Flow",
            "description": "How work moves.",
            "data_source": "Jira",
            "metrics": [
                {"metric_name": "Total Work in Progress (# of items)", "target": 50, "higher_is_better": False},
                {"metric_name": "Average Cycle Time (Days)", "description": "Mean days to done."},
            ],
            "children": [
                {
                    "indicator": "Quality",
                    "data_source": "CI",
                    "metrics": [{"metric_name": "Code Coverage %", "target": 80}],
                }
            ],
        }
    ]


@pytest.fixture
def tree_dicts():
    return _tree_dicts()


@pytest.fixture
def nodes():
    return [IndicatorNode.from_dict(d) for d in _tree_dicts()]
