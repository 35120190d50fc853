import json
from datetime import timedelta

from gifgrep.model import APP_NAME, Options, Result


def test_result_to_dict_omits_empty_optional_fields():
    res = Result(id="abc", title="Cat", url="u", preview_url="p")
    assert res.to_dict() == {"id": "abc", "title": "Cat", "url": "u", "preview_url": "p"}


def test_result_to_dict_includes_set_fields():
    res = Result(id="x", url="u", tags=["a", "b"], width=10, height=5)
    d = res.to_dict()
    assert d["tags"] == ["a", "b"]
    assert d["width"] == 10
    assert d["height"] == 5
    assert d["preview_url"] == ""


def test_result_to_dict_is_json_serialisable_round_trip():
    res = Result(id="1", title="T", url="https://example.com/a.gif", preview_url="https://example.com/p.gif")
    text = json.dumps(res.to_dict())
    assert '"preview_url"' in text
    assert Result(**json.loads(text)) == res


def test_tags_not_shared_between_instances():
    a = Result()
    b = Result()
    a.tags.append("x")
    assert b.tags == []


def test_options_defaults():
    opts = Options()
    assert opts.still_at == timedelta(0)
    assert opts.stills_count == 0
    assert opts.json is False
    assert APP_NAME == "gifgrep"