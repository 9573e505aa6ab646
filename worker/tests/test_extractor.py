import logging

import pytest
from bs4 import BeautifulSoup

from leadmap.etl import extractor

ADDRESS = "123 MG Road, Koramangala, Bangalore, Karnataka 560095, India"


def _parse(html, selector=".Nv2PK"):
    return BeautifulSoup(html, "html.parser").select_one(selector)


@pytest.fixture
def full_card(make_card):
    html = make_card(
        fragments=(
            "Dental clinic",
            "·",
            ADDRESS,
            "Open ⋅ Closes 8 pm",
            "9876543210",
            "info@acme.in",
        ),
        links=("https://acme-dental.in", "https://www.google.com/maps/dir/acme"),
    )
    return _parse(html)


def test_extract_record_full_card(full_card):
    record = extractor.extract_record(full_card, id_prefix="gen_abc")

    assert record.business_name == "Acme Dental"
    assert record.place_id == "11068"
    assert record.place_url.startswith("https://www.google.com/maps/place/Acme+Dental/")
    assert (record.latitude, record.longitude) == ("12.9720", "77.5950")
    assert record.average_rating == "4.5"
    assert record.total_reviews == "1234"
    assert record.category == "Dental clinic"
    assert record.phone == "9876543210"
    assert record.phone_2 is None
    assert record.email == "info@acme.in"
    assert record.website == "https://acme-dental.in"
    assert record.website_2 is None
    assert record.full_address == ADDRESS
    assert record.address == "123 MG Road, Koramangala"
    assert record.city == "Bangalore"
    assert record.state == "Karnataka"
    assert record.postal_code == "560095"
    assert record.country == "India"


def test_extract_record_without_name_returns_none(make_card):
    card = _parse(make_card(name=None, fragments=("Cafe",)))

    assert extractor.extract_record(card) is None


def test_extract_record_assigns_stable_synthetic_id(make_card):
    html = make_card(name="Corner Cafe", href=None, fragments=("Cafe", "12 Main Road, Pune"))

    first = extractor.extract_record(_parse(html), id_prefix="gen_abc")
    again = extractor.extract_record(_parse(html), id_prefix="gen_abc")
    other_session = extractor.extract_record(_parse(html), id_prefix="gen_xyz")

    assert first.place_id.startswith("gen_abc_")
    assert len(first.place_id) == len("gen_abc_") + 12
    assert first.place_id == again.place_id
    assert other_session.place_id != first.place_id
    assert first.place_url is None


def test_extract_record_when_card_is_the_link():
    html = '<a class="hfpxzc" aria-label="Corner Cafe" href="/maps/place/Corner+Cafe/data=!1s0x1a:0xff"></a>'
    card = _parse(html, "a")

    record = extractor.extract_record(card, maps_base_url="https://www.google.co.in/")

    assert record.business_name == "Corner Cafe"
    assert record.place_id == "255"
    assert record.place_url == "https://www.google.co.in/maps/place/Corner+Cafe/data=!1s0x1a:0xff"


def test_extract_record_rating_from_aria_label():
    html = (
        '<div class="Nv2PK"><div class="qBF1Pd">Chai Point</div>'
        '<span role="img" aria-label="4.2 stars 87 Reviews"></span></div>'
    )

    record = extractor.extract_record(_parse(html))

    assert record.average_rating == "4.2"
    assert record.total_reviews is None


def test_extract_record_caps_contacts(make_card):
    html = make_card(
        fragments=(
            "Bakery",
            "9845012301",
            "9845012302",
            "9845012303",
            "9845012304",
            "a@x.in",
            "b@x.in",
            "c@x.in",
        ),
        links=("https://one.example", "https://two.example", "https://three.example"),
    )

    record = extractor.extract_record(_parse(html))

    assert (record.phone, record.phone_2, record.phone_3) == ("9845012301", "9845012302", "9845012303")
    assert (record.email, record.email_2) == ("a@x.in", "b@x.in")
    assert (record.website, record.website_2) == ("https://one.example", "https://two.example")


def test_extract_record_country_from_page_url(make_card):
    html = make_card(fragments=("Cafe", "12 Main Road, Pune"))

    record = extractor.extract_record(_parse(html), page_url="https://www.google.co.in/maps/search/cafe")

    assert record.country == "India"


def test_extract_records_skips_broken_and_nameless_cards(make_card, caplog):
    good = _parse(make_card(fragments=("Cafe",)))
    nameless = _parse(make_card(name=None))

    with caplog.at_level(logging.WARNING):
        records = extractor.extract_records([None, nameless, good], id_prefix="gen_abc")

    assert [record.business_name for record in records] == ["Acme Dental"]
    assert "Failed to parse card 0" in caplog.text


def test_place_id_from_link_variants():
    assert extractor.place_id_from_link("/maps/place/X/data=!1s0x39ae:0x1a") == "26"
    assert extractor.place_id_from_link("/maps?ftid=abc123") == "abc123"
    assert extractor.place_id_from_link("/maps/place/X") is None


def test_coordinates_from_link_prefers_data_segment():
    href = "/maps/place/X/@12.97,77.59,17z/data=!3d12.9720!4d77.5950"

    assert extractor.coordinates_from_link(href) == ("12.9720", "77.5950")
    assert extractor.coordinates_from_link("/maps/@-33.86,151.2,15z") == ("-33.86", "151.2")
    assert extractor.coordinates_from_link("/maps/place/X") == (None, None)


def test_build_full_address_cleans_and_strips_category():
    assert extractor.build_full_address(["12 Main  Road", "Pune"], None) == "12 Main Road, Pune"
    assert extractor.build_full_address(["Dental clinic · 12 Main Road"], "Dental clinic") == "12 Main Road"
    assert extractor.build_full_address([], None) is None


def test_absolutize_place_url():
    assert extractor.absolutize_place_url("/maps/place/X", "https://www.google.com") == (
        "https://www.google.com/maps/place/X"
    )
    assert extractor.absolutize_place_url("https://maps.app/x", "https://www.google.com") == "https://maps.app/x"
    assert extractor.absolutize_place_url("maps/place/X", "https://www.google.com") is None


def test_extract_records_keeps_same_name_linkless_cards_apart(make_card):
    cards = [
        _parse(make_card(name="Tea Stall", href=None, rating="4.1", fragments=("Tea house",))),
        _parse(make_card(name="Tea Stall", href=None, rating="3.2", fragments=("Tea house",))),
    ]

    records = extractor.extract_records(cards, id_prefix="gen_abc")

    assert len({record.place_id for record in records}) == 2


def test_synthetic_id_ignores_late_rendered_text(make_card):
    bare = _parse(make_card(name="Corner Cafe", href=None))
    filled = _parse(make_card(name="Corner Cafe", href=None, fragments=("Cafe", "12 Main Road, Pune")))

    first = extractor.extract_record(bare, id_prefix="gen_abc", position=3)
    later = extractor.extract_record(filled, id_prefix="gen_abc", position=3)

    assert later.full_address == "12 Main Road, Pune"
    assert first.place_id == later.place_id
