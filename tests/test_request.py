import emoji
import pytest

from pokem.poke.errors import MalformedRequest
from pokem.poke.request import Notification, normalize, parse_priority, split_tags, tags_to_emoji

WARNING = emoji.emojize(":warning:", language="alias")


def test_query_parameters():
    n = normalize("/ops", {"message": "disk full", "priority": "urgent"}, {}, b"")
    assert n == Notification(topic="ops", message="disk full", priority=5)


def test_json_body():
    body = b'{"message": "hi", "title": "Build", "priority": 4, "tags": ["warning"]}'
    n = normalize("/ci", {}, {}, body)
    assert n.topic == "ci"
    assert n.message == "hi"
    assert n.title == "Build"
    assert n.priority == 4
    assert n.tags == ("warning",)


def test_json_without_message_is_raw_body():
    n = normalize("/ci", {}, {}, b'{"title": "x"}')
    assert n.message == '{"title": "x"}'
    assert n.title is None


@pytest.mark.parametrize(
    "body",
    [
        b'{"message": "hi", "tags": 5}',
        b'{"message": "hi", "tags": true}',
        b'{"message": "hi", "tags": [1, 2]}',
        b'{"message": "hi", "priority": {"level": 4}}',
        b'{"message": "hi", "priority": [1]}',
        b'{"message": "hi", "priority": true}',
        b'{"message": "hi", "title": 7}',
    ],
)
def test_json_with_wrong_field_types_is_raw_body(body):
    n = normalize("/ops", {}, {}, body)
    assert n.message == body.decode()
    assert n.tags is None
    assert n.priority is None
    assert n.title is None


def test_json_tags_as_string():
    n = normalize("/ops", {}, {}, b'{"message": "hi", "tags": "warning,skull", "priority": "high"}')
    assert n.tags == ("warning", "skull")
    assert n.priority == 4


def test_headers_and_raw_body():
    n = normalize("/ops", {}, {"X-Title": "Alert", "p": "high", "Tags": "warning, skull"}, b"text")
    assert n.title == "Alert"
    assert n.priority == 4
    assert n.tags == ("warning", "skull")
    assert n.message == "text"


def test_query_wins_over_headers():
    n = normalize("/ops", {"Message": "from query"}, {"message": "from header"}, b"from body")
    assert n.message == "from query"


def test_header_message_wins_over_body():
    n = normalize("/ops", {}, {"m": "from header"}, b"from body")
    assert n.message == "from header"


def test_topic_is_percent_decoded():
    n = normalize("/%23ops%3Aexample.org", {}, {}, b"hi")
    assert n.topic == "#ops:example.org"


def test_invalid_utf8():
    with pytest.raises(MalformedRequest):
        normalize("/ops", {}, {}, b"\xff\xfe\xfa")


@pytest.mark.parametrize(
    "value,expected",
    [("min", 1), ("low", 2), ("default", 3), ("high", 4), ("urgent", 5), ("max", 5),
     ("HIGH", 4), ("bogus", 3), ("9", 5), ("0", 1), (7, 5), (2, 2)],
)
def test_parse_priority(value, expected):
    assert parse_priority(value) == expected


def test_split_tags():
    assert split_tags("a, b,,c ") == ("a", "b", "c")
    assert split_tags(["a", " b "]) == ("a", "b")


def test_unknown_tags_are_dropped():
    assert tags_to_emoji(("warning", "definitely_not_an_emoji")) == WARNING
    assert tags_to_emoji(("definitely_not_an_emoji",)) == ""


def test_partial_shortcode_match_is_dropped():
    assert tags_to_emoji(("warning:junk",)) == ""
    assert tags_to_emoji(("junk:warning",)) == ""
    assert tags_to_emoji(("warning:junk", "warning")) == WARNING


def test_render_title_and_tags():
    n = Notification(topic="ops", message="disk full", title="Disk", tags=("warning",))
    assert n.render() == f"{WARNING} **Disk**\n\ndisk full"


def test_render_plain():
    assert Notification(topic="ops", message="hi").render() == "hi"
