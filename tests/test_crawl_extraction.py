from fakes import html_doc, read_fixture

from guestarchive.models.sources import ListingConfig, SourceConfig, anchor, css, key, regex
from guestarchive.services.crawl.base import Document
from guestarchive.services.crawl.extraction import FieldExtractor
from guestarchive.services.crawl.sources import get_source


def source_with(fields, **extra):
    return SourceConfig(
        name="example",
        listing=ListingConfig(roots=["https://www.example.org/"], item_pattern=r"/items/"),
        fields=fields,
        **extra,
    )


def test_primary_selector_wins_and_records_strategy_zero():
    extractor = FieldExtractor(get_source("bfmtv_face_a_duhamel"))
    item = extractor.extract(html_doc(read_fixture("bfm_episode.html")), "ep-1")

    assert item.get("title") == "Face à Duhamel : Jean Dupont"
    assert item.get("description").startswith("Ce jeudi 7 mars 2024, Alain Duhamel")
    assert item.get("date") == "Ce jeudi 7 mars 2024"
    assert item.get("banner") == "économiste"
    assert item.provenance() == {"title": 0, "description": 0, "date": 0, "banner": 0}


def test_anchor_scan_recovers_description_after_template_drift():
    extractor = FieldExtractor(get_source("bfmtv_face_a_duhamel"))
    item = extractor.extract(html_doc(read_fixture("bfm_episode_drift.html")), "ep-2")

    assert item.get("description") == (
        "Ce jeudi 15 février 2024, Alain Duhamel, éditorialiste, a débattu avec Marie Martin, avocate, de la laïcité."
    )
    assert item.fields["description"].strategy == 2
    assert item.get("date") == "Ce jeudi 15 février 2024"


def test_anchor_prefers_innermost_element():
    doc = html_doc(
        "<html><body><div id='outer'><div class='inner'><p>Présenté par la rédaction</p></div>"
        "<p>autre texte</p></div></body></html>"
    )
    extractor = FieldExtractor(source_with({"title": [anchor("Présenté par")]}))
    assert extractor.extract(doc, "x").get("title") == "Présenté par la rédaction"


def test_missing_fields_are_absent_not_errors():
    extractor = FieldExtractor(source_with({"title": [css("h1")], "date": [css("time", attr="datetime")]}))
    item = extractor.extract(html_doc("<html><body><p>rien</p></body></html>"), "x")
    assert item.get("title") is None
    assert item.get("date") is None
    assert item.fields == {}


def test_empty_text_falls_through_to_next_strategy():
    extractor = FieldExtractor(source_with({"title": [css("h1"), css("h2")]}))
    item = extractor.extract(html_doc("<html><body><h1>   </h1><h2>Sous-titre</h2></body></html>"), "x")
    assert item.get("title") == "Sous-titre"
    assert item.fields["title"].strategy == 1


def test_raising_strategy_is_treated_as_no_value(monkeypatch):
    extractor = FieldExtractor(source_with({"title": [css("h1"), anchor("Titre")]}))

    def broken(strategy, document):
        raise RuntimeError("selector engine failure")

    monkeypatch.setattr(extractor, "_css", broken)
    item = extractor.extract(html_doc("<html><body><h1>Titre principal</h1></body></html>"), "x")
    assert item.get("title") == "Titre principal"
    assert item.fields["title"].strategy == 1


def test_css_index_and_attribute():
    extractor = FieldExtractor(
        source_with({"title": [css("li", index=-1)], "link": [css("a.main", attr="href")]})
    )
    doc = html_doc('<html><body><ul><li>un</li><li>deux</li></ul><a class="main" href="/ep/1">ep</a></body></html>')
    item = extractor.extract(doc, "x")
    assert item.get("title") == "deux"
    assert item.get("link") == "/ep/1"


def test_regex_reads_a_field_resolved_later_in_declaration_order():
    extractor = FieldExtractor(
        source_with(
            {
                "title": [css("h1")],
                "date": [regex(r"diffusé le (\d{1,2} \w+ \d{4})", source="description")],
                "description": [css("p.desc")],
            }
        )
    )
    doc = html_doc("<html><body><h1>T</h1><p class='desc'>Émission diffusé le 3 mars 2024 à 20h</p></body></html>")
    item = extractor.extract(doc, "x")
    assert item.get("date") == "3 mars 2024"


def test_regex_without_source_scans_document_text():
    extractor = FieldExtractor(source_with({"title": [regex(r"Épisode (\d+)")]}))
    item = extractor.extract(html_doc("<html><body><div><span>Épisode 42</span></div></body></html>"), "x")
    assert item.get("title") == "42"


def test_key_strategy_reads_json_payload():
    source = get_source("ccesoir_youtube", rewrites={})
    extractor = FieldExtractor(source)
    card = Document(
        url="https://www.youtube.com/watch?v=abc",
        payload={
            "snippet": {"title": "C ce Soir du 1er mars 2024 : la guerre", "description": "Avec :\nJean DUPONT"},
            "url": "https://www.youtube.com/watch?v=abc",
        },
    )
    item = extractor.extract_card(card, "https://www.youtube.com/watch?v=abc")
    assert item.get("title") == "C ce Soir du 1er mars 2024 : la guerre"
    assert item.get("date") == "1er mars 2024"
    assert item.get("link") == "https://www.youtube.com/watch?v=abc"
    assert item.guests == []


def test_guest_rows_are_read_in_order():
    extractor = FieldExtractor(get_source("franceinter_debat"))
    item = extractor.extract(html_doc(read_fixture("franceinter_episode.html")), "ep")
    assert item.get("title") == "Faut-il taxer les superprofits ?"
    assert [(g.name, g.role) for g in item.guests] == [
        ("Jean Dupont", "Économiste à l'OFCE"),
        ("Marie Martin", "Députée, rapporteure du budget"),
        ("Jean Dupont", "Économiste à l'OFCE"),
    ]
    assert {g.origin for g in item.guests} == {"rows"}


def test_guest_section_reads_paragraphs_after_heading():
    extractor = FieldExtractor(get_source("franceinfo_informes"))
    item = extractor.extract(html_doc(read_fixture("franceinfo_episode.html")), "ep")
    assert item.get("date") == "2024-03-05T09:00:00+01:00"
    assert [(g.name, g.role) for g in item.guests] == [
        ("Jean Dupont,", "journaliste au service politique du Monde"),
        ("- Marie Martin :", "éditorialiste à L'Opinion"),
        (None, "Paul Durand, politologue, professeur à Sciences Po"),
        (None, "------------------"),
        ("Retrouvez l'intégralité", "de l'émission en podcast"),
    ]


def test_complete_from_page_fills_only_missing_detail_fields():
    source = get_source("europe1_interview", pages=1)
    extractor = FieldExtractor(source)
    listing = html_doc(read_fixture("europe1_listing.html"), url="https://www.europe1.fr/emissions/x?page=1")
    cards = [Document(url=listing.url, tree=node) for node in listing.tree.css(".episode-card")]

    with_desc = extractor.extract_card(cards[0], "a")
    assert extractor.missing_detail_fields(with_desc) == []

    without_desc = extractor.extract_card(cards[1], "b")
    assert without_desc.get("date") == "11/03/2024"
    assert extractor.missing_detail_fields(without_desc) == ["description"]

    extractor.complete_from_page(without_desc, html_doc(read_fixture("europe1_episode.html")))
    assert without_desc.get("description") == "Marie Martin, députée européenne, répond aux questions de Sonia Mabrouk."
    # Card chain has one strategy, so the page's primary strategy ranks second.
    assert without_desc.fields["description"].strategy == 1
    assert without_desc.fields["title"].strategy == 0
