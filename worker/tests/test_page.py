import pytest

from leadmap.core.page import MapsPage, SnapshotPage


def test_snapshot_page_requires_html():
    with pytest.raises(ValueError):
        SnapshotPage([])


def test_find_cards_uses_first_matching_selector(make_card, make_feed):
    html = make_feed(make_card(name="One"), make_card(name="Two"))
    page = SnapshotPage([html])

    cards = page.find_cards()

    assert len(cards) == 2
    assert all("Nv2PK" in card.get("class", []) for card in cards)


def test_find_cards_falls_back_to_place_links(make_href):
    html = (
        '<div role="feed">'
        f'<a href="{make_href("aa", "One")}">One</a>'
        f'<a href="{make_href("bb", "Two")}">Two</a>'
        "</div>"
    )

    assert len(SnapshotPage([html]).find_cards()) == 2


def test_find_cards_empty_page():
    assert SnapshotPage(["<html><body><p>Loading</p></body></html>"]).find_cards() == []


def test_end_of_list_by_marker_and_text(make_card, make_feed):
    assert SnapshotPage([make_feed(make_card(), end_marker=True)]).end_of_list_reached()
    assert SnapshotPage(["<body><p>No more results</p></body>"]).end_of_list_reached()
    assert not SnapshotPage([make_feed(make_card())]).end_of_list_reached()


def test_scroll_advances_and_stays_on_last_snapshot(make_card, make_feed):
    first = make_feed(make_card(name="One"))
    second = make_feed(make_card(name="One"), make_card(name="Two"))
    page = SnapshotPage([first, second], url="https://www.google.com/maps/search/cafe")

    assert len(page.find_cards()) == 1
    page.scroll_for_more()
    assert len(page.find_cards()) == 2
    page.scroll_for_more()
    assert len(page.find_cards()) == 2
    assert page.scrolls == 2
    assert page.current_url == "https://www.google.com/maps/search/cafe"


def test_base_page_requires_snapshot():
    with pytest.raises(NotImplementedError):
        MapsPage().find_cards()
