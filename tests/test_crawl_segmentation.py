from guestarchive.models.sources import SegmenterConfig
from guestarchive.services.crawl.segmentation import DescriptionSegmenter, split_name_role


def pairs(description, **config):
    seg = DescriptionSegmenter(SegmenterConfig(**config)) if config else DescriptionSegmenter()
    return [(p.name, p.role) for p in seg.segment(description)]


def test_marker_blocks_yield_one_guest_each():
    desc = "▶️ Jean DUPONT, économiste\n▶️ Marie MARTIN, avocate"
    assert pairs(desc) == [("Jean DUPONT", "économiste"), ("Marie MARTIN", "avocate")]


def test_marker_preamble_is_discarded_and_markers_mix():
    desc = (
        "Ce soir, la guerre en Ukraine. Nos invités :\n"
        "\U0001f4cc Jean-Louis BOURLANGES, ancien député MoDem\n"
        "➤ Anne DE GUIGNÉ, journaliste au Figaro\n"
        "▶︎ Dominique CARLAC’H, présidente d'ETHIC"
    )
    assert pairs(desc) == [
        ("Jean-Louis BOURLANGES", "ancien député MoDem"),
        ("Anne DE GUIGNÉ", "journaliste au Figaro"),
        ("Dominique CARLAC’H", "présidente d'ETHIC"),
    ]


def test_name_only_line_is_joined_with_role_line():
    desc = "\U0001f4cc Jean DUPONT\nÉconomiste à l'OFCE\nAuteur de plusieurs essais\n\U0001f4cc Marie MARTIN, avocate"
    assert pairs(desc) == [("Jean DUPONT", "Économiste à l'OFCE"), ("Marie MARTIN", "avocate")]


def test_every_given_name_is_kept():
    desc = "▶️ Jean Pierre Marie DUPONT, économiste\n▶️ Marie MARTIN, avocate"
    assert pairs(desc) == [("Jean Pierre Marie DUPONT", "économiste"), ("Marie MARTIN", "avocate")]
    desc = "\U0001f4cc Anne Sophie Claire LEROY\nHistorienne"
    assert pairs(desc) == [("Anne Sophie Claire LEROY", "Historienne")]
    desc = "Ce soir avec :\nJean Pierre Marie DUPONT, économiste\n"
    assert pairs(desc) == [("Jean Pierre Marie DUPONT", "économiste")]
    pair = split_name_role("Jean Pierre Marie DUPONT : économiste")
    assert pair.name == "Jean Pierre Marie DUPONT"


def test_prefix_list_keeps_name_lines_only():
    desc = (
        "Ce soir, Karim Rissouli débat avec :\n"
        "Jean DUPONT, économiste\n"
        "ok\n"
        "Marie MARTIN avocate au barreau de Paris\n"
        "un débat animé et passionnant\n"
    )
    assert pairs(desc) == [("Jean DUPONT", "économiste"), ("Marie MARTIN", "avocate au barreau de Paris")]


def test_inline_single_guest():
    assert pairs("Jean Dupont, économiste, répond aux questions") == [("Jean Dupont", "économiste")]


def test_inline_accepts_unaccented_marker():
    assert pairs("Marie Martin, avocate au barreau de Lyon, repond a Sonia Mabrouk") == [
        ("Marie Martin", "avocate au barreau de Lyon")
    ]


def test_unsegmentable_description_yields_nothing():
    assert pairs("Un magazine consacré à l'actualité de la semaine.") == []
    assert pairs("") == []
    assert pairs(None) == []


def test_name_length_bounds_reject_mis_segmented_names():
    desc = "▶️ Jean-Baptiste DE LA ROCHEFOUCAULD, duc\n▶️ Marie MARTIN, avocate"
    assert pairs(desc, min_name_length=4, max_name_length=20) == [("Marie MARTIN", "avocate")]


def test_custom_inline_patterns_replace_the_default():
    desc = "Ce jeudi 7 mars 2024, Alain Duhamel a débattu avec Jean Dupont, économiste, de la dette."
    got = pairs(
        desc,
        block_markers=[],
        prefix_phrases=[],
        inline_patterns=[r"a débattu avec (?P<name>[^,]+), (?P<role>[^,]+)"],
    )
    assert got == [("Jean Dupont", "économiste")]


def test_shapes_can_be_disabled():
    desc = "▶️ Jean DUPONT, économiste"
    assert pairs(desc, block_markers=[], prefix_phrases=[], inline_patterns=[]) == []


def test_split_name_role_handles_separators():
    pair = split_name_role("Clara MARCHAUD - correspondante à Kiev")
    assert (pair.name, pair.role) == ("Clara MARCHAUD", "correspondante à Kiev")
    pair = split_name_role("Hervé LE BRAS : démographe")
    assert (pair.name, pair.role) == ("Hervé LE BRAS", "démographe")
    assert split_name_role("pas de nom ici") is None
