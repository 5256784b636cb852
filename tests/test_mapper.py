from order_intake.domain.models import ContextSignature
from order_intake.intake.extractor import extract_values
from order_intake.intake.mapper import ItemSection, auto_map, score_signature, signature_matches
from order_intake.intake.patterns import PatternStore
from order_intake.intake.tokenizer import line_at, tokenize


SAMPLE = "\n".join(
    [
        "Orderer: Jane Doe",
        "Contact: 010-1234-5678",
        "Date: 2024-05-01 12:00",
        "Ordered items",
        "Kimbap 2ea",
        "Rice 1",
        "Requests: leave at door",
    ]
)


def test_tokenize_keeps_blank_lines_and_numbers_from_one():
    lines = tokenize("  first \r\n\r\nthird\rfourth\n")
    assert [ln.index for ln in lines] == [1, 2, 3, 4, 5]
    assert lines[0].text == "first"
    assert lines[1].is_blank
    assert line_at(lines, 4).text == "fourth"
    assert line_at(lines, 0) is None
    assert line_at(lines, 6) is None


def test_tokenize_empty_text():
    assert tokenize("") == []


def test_keyword_fallback_maps_labelled_lines():
    mapping = auto_map(tokenize(SAMPLE))
    assert mapping.singular == {
        "customerName": 1,
        "customerPhone": 2,
        "utilizationDate": 3,
        "requestNote": 7,
    }
    assert mapping.items == [5, 6]


def test_auto_map_is_deterministic():
    lines = tokenize(SAMPLE)
    store = PatternStore({"visitor": [ContextSignature("", "Rice 1", "END")]})
    assert auto_map(lines, store) == auto_map(lines, store)


def test_item_section_never_reopens():
    lines = tokenize("Menu\nKimbap 2\nCoupon\nMenu\nRice 1")
    mapping = auto_map(lines)
    assert mapping.items == [2]


def test_item_section_states():
    section = ItemSection()
    assert section.feed("hello") is False
    assert section.feed("Menu") is False
    assert section.feed("Kimbap") is True
    assert section.feed("Payment total: 3000") is False
    assert section.state == "CLOSED"
    assert section.feed("Menu") is False
    assert section.feed("Rice") is False


def test_signature_scores_and_thresholds():
    lines = tokenize("Alpha\nGuest Kim\nOmega")
    assert score_signature(ContextSignature("Guest", "Alpha", "Omega"), lines, 2) == 5
    assert signature_matches(ContextSignature("Guest", "Alpha", "zzz"), lines, 2)
    assert not signature_matches(ContextSignature("Guest", "zzz", "zzz"), lines, 2)
    assert not signature_matches(ContextSignature("", "Alpha", "zzz"), lines, 2)


def test_signature_at_start_needs_only_two_points():
    lines = tokenize("Alpha\nGuest Kim\nOmega")
    assert score_signature(ContextSignature("", "START", "nope"), lines, 1) == 2
    assert signature_matches(ContextSignature("", "START", "nope"), lines, 1)


def test_learned_signature_wins_over_keyword():
    lines = tokenize("Order form\nName: Placeholder\nKim Minsu\n010-1111-2222")
    store = PatternStore({"customerName": [ContextSignature("", "Name: Placeholder", "010-1111-2222")]})
    mapping = auto_map(lines, store)
    assert mapping.line_for("customerName") == 3
    assert mapping.line_for("customerPhone") == 4


def test_claimed_line_is_not_reused():
    lines = tokenize("Greetings\nPark Jisoo\nThanks")
    store = PatternStore(
        {
            "customerName": [ContextSignature("", "Greetings", "Thanks")],
            "visitor": [ContextSignature("", "Greetings", "Thanks")],
        }
    )
    mapping = auto_map(lines, store)
    assert mapping.singular == {"customerName": 2}


def test_address_guidance_takes_next_non_blank_line():
    lines = tokenize("Please enter delivery address\n\n12 Harbor Road")
    mapping = auto_map(lines)
    assert mapping.line_for("address") == 3


def test_address_guidance_skips_when_next_line_is_claimed():
    lines = tokenize("Please enter delivery address\nLee")
    store = PatternStore({"visitor": [ContextSignature("", "Please enter delivery address", "END")]})
    mapping = auto_map(lines, store)
    assert mapping.line_for("visitor") == 2
    assert mapping.line_for("address") is None


def test_cue_without_payload_is_not_mapped():
    mapping = auto_map(tokenize("Address:\nsomewhere"))
    assert mapping.line_for("address") is None


def test_zone_keyword_ignored_inside_item_block():
    lines = tokenize("Menu\nZone A delivery\nRequests: none")
    mapping = auto_map(lines)
    assert mapping.line_for("deliveryZone") is None
    assert mapping.items == [2]


def test_address_prompt_maps_following_line():
    lines = tokenize("please enter delivery address\n123 Main St")
    mapping = auto_map(lines)
    assert mapping.line_for("address") == 2
    assert extract_values(lines, mapping)["address"] == "123 Main St"
