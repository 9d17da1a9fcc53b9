from __future__ import annotations


def test_total_label_with_currency():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("MCDONALDS\n1 McB ChiliChicken    2.50\nTotal: $2.50") == 2.50


def test_subtotal_and_total_prefer_largest_significant_amount():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    # "Subtotal" also satisfies the total label, so both land in the same tier.
    assert extract_amount("Subtotal: $1.50\nTotal: $12.99") == 12.99


def test_higher_priority_tier_is_never_mixed_with_lower_tiers():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    text = "Total 99.00\nIn total (incl VAT) 12.50"
    assert extract_amount(text) == 12.50


def test_small_amounts_fall_back_to_overall_maximum():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("Total: 1.50\nTotal: 0.99") == 1.50


def test_thousands_separator_is_stripped():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("Grand Total: $1,234.56") == 1234.56


def test_amount_above_limit_is_rejected():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("Total: 75,000.00") is None


def test_euro_suffix_amount():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("Kosten 12.40€") == 12.40


def test_trailing_line_fallback_scans_lines_without_labels():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("Coffee:3.50\nTea:1.25") == 3.50


def test_no_numbers_returns_none():
    from expense_lens.modules.extraction.parsers.amount import extract_amount

    assert extract_amount("thank you for visiting") is None
    assert extract_amount("") is None


def test_pick_total_rules():
    from expense_lens.modules.extraction.parsers.amount import pick_total

    assert pick_total([]) is None
    assert pick_total([1.0, 0.5]) == 1.0
    assert pick_total([1.5, 2.0, 19.99]) == 19.99


def test_parse_amount_handles_noise():
    from expense_lens.modules.extraction.parsers.amount import parse_amount

    assert parse_amount("1,000.25") == 1000.25
    assert parse_amount("") is None
    assert parse_amount(None) is None
    assert parse_amount(".") is None
