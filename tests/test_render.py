import json

import pytest
import yaml

from designtree.tasks.render import (
    DEPTH_WARNING,
    ResultStore,
    build_result,
    direct_header,
    render,
    result_key,
    to_json_min,
)


@pytest.fixture
def design():
    return {
        "name": "Demo",
        "lastModified": "2024-05-01",
        "thumbnailUrl": "",
        "nodes": [{"id": "1:1", "name": "Root", "type": "FRAME", "children": [{"id": "1:2", "name": "Ö", "type": "TEXT"}]}],
        "components": {"c:1": {"id": "c:1", "name": "Btn"}},
    }


def test_build_result_without_depth(design):
    result = build_result(design)
    assert list(result) == ["file", "nodes", "components"]
    assert result["file"] == {"name": "Demo", "lastModified": "2024-05-01", "thumbnailUrl": ""}
    assert result["nodes"][0]["children"][0]["id"] == "1:2"


def test_build_result_with_depth_warns_and_cuts(design):
    result = build_result(design, depth=1)
    assert result["warning"] == DEPTH_WARNING
    assert result["depth_info"]["current_api_depth"] == 1
    assert "children" not in result["nodes"][0]
    assert "children" in design["nodes"][0]


@pytest.mark.parametrize("fmt, load", [("yaml", yaml.safe_load), ("json", json.loads)])
def test_render_round_trips(design, fmt, load):
    result = build_result(design)
    assert load(render(result, fmt)) == result


def test_render_yaml_keeps_key_order_and_unicode(design):
    text = render(build_result(design), "yaml")
    assert text.index("file:") < text.index("nodes:") < text.index("components:")
    assert "Ö" in text


def test_render_rejects_unknown_format(design):
    with pytest.raises(ValueError):
        render(build_result(design), "xml")


def test_direct_header(design):
    result = build_result(design)
    yaml_head = direct_header(result, "KEY", "yaml")
    assert yaml_head.startswith("# Figma Design: Demo\n# Nodes: 1\n# Size: ")
    assert yaml_head.endswith(" KB\n\n")
    assert direct_header(result, "KEY", "json").startswith("/* Figma Design: Demo\n * Nodes: 1\n")
    assert direct_header({"nodes": []}, "KEY", "yaml").startswith("# Figma Design: KEY\n")


def test_result_key():
    assert result_key("abc") == "abc"
    assert result_key("abc", "1:2") == "abc-1:2"
    assert result_key("abc", "1:2", 3) == "abc-1:2-depth3"
    assert result_key("abc", None, 2) == "abc-depth2"


def test_store_put_get_describe(design):
    store = ResultStore()
    result = build_result(design, depth=2)
    assert store.put("k", result, fmt="yaml", file_key="abc", depth=2) is False
    assert store.put("k", result, fmt="json", file_key="abc", depth=2) is True
    assert len(store) == 1
    assert store.keys() == ["k"]

    entry = store.get("k")
    assert entry["data"] == to_json_min(result)
    assert entry["originalFormat"] == "json"
    assert entry["metadata"]["fileName"] == "Demo"

    desc = store.describe("k")
    assert desc["name"] == "Demo"
    assert desc["description"].startswith("Demo - 1 nodes • 1 components • depth 2 • ")
    assert store.describe("missing") is None
