import pytest

from testgen.core.exceptions import InvalidFormat, InvalidLink, ReviewLinkError
from testgen.services.review_link_parser import find_review_links, parse_review_link


@pytest.mark.parametrize(
    "link",
    [
        "https://github.com/acme/mobile/pull/42",
        "http://github.com/acme/mobile/pull/42",
        "github.com/acme/mobile/pull/42",
        "  https://github.com/acme/mobile/pull/42/files  ",
        "https://github.example.org:8443/acme/mobile/pull/42?diff=split",
    ],
)
def test_valid_links(link):
    reference = parse_review_link(link)
    assert reference.owner == "acme"
    assert reference.repository == "mobile"
    assert reference.review_number == 42
    assert str(reference) == "acme/mobile/pull/42"


@pytest.mark.parametrize("link", [None, "", "   ", 42, "https://github .com/acme/mobile/pull/1", "ftp://github.com/a/b/pull/1"])
def test_not_a_url(link):
    with pytest.raises(InvalidLink):
        parse_review_link(link)


@pytest.mark.parametrize(
    "link",
    [
        "https://github.com/acme/mobile",
        "https://github.com/acme/mobile/issues/42",
        "https://github.com/acme/mobile/pull/abc",
        "https://github.com/acme/mobile/pull/-1",
    ],
)
def test_wrong_path_shape(link):
    with pytest.raises(InvalidFormat):
        parse_review_link(link)


def test_link_errors_are_client_errors():
    with pytest.raises(ReviewLinkError) as exc_info:
        parse_review_link("https://github.com/acme")
    assert exc_info.value.status_code == 400
    assert exc_info.value.details["link"] == "https://github.com/acme"


def test_find_review_links_in_free_text():
    text = (
        "Fixed in https://github.com/acme/mobile/pull/1 and github.com/acme/profile-service/pull/27.\n"
        "See also https://github.com/acme/mobile/issues/3"
    )
    assert find_review_links(text) == [
        "https://github.com/acme/mobile/pull/1",
        "github.com/acme/profile-service/pull/27",
    ]
    assert find_review_links("") == []
