from zoneview.services.assignments import NameMatcher, extract, extract_detailed, merge_assignments


def test_header_row_maps_every_key_to_driver():
    rows = [["Driver", "Zone Keys"], ["Alex", "W1,W1_NE"]]
    assert extract(rows) == {"W1": "Alex", "W1_NE": "Alex"}


def test_header_can_appear_below_preamble_rows():
    rows = [
        ["Delivery plan", "", ""],
        ["", "", ""],
        ["Day", "Assigned To", "Route Keys"],
        ["Monday", "Jo-Ann O'Neil", "w01_ne; W2 | W3/W4_SW_LR"],
        ["Tuesday", "Monday", "W5"],
        ["Wednesday", "R2D2", "W6"],
    ]
    result = extract_detailed(rows)

    assert result.strategy == "header"
    assert result.header.row == 2
    assert result.mapping == {
        "W1_NE": "Jo-Ann O'Neil",
        "W2": "Jo-Ann O'Neil",
        "W3": "Jo-Ann O'Neil",
        "W4_SW_LR": "Jo-Ann O'Neil",
    }


def test_known_names_are_required_when_given():
    rows = [["Driver", "Keys"], ["alex", "W1"], ["Sam", "W2"]]
    assert extract(rows, known_names={"Alex"}) == {"W1": "Alex"}


def test_fallback_scans_rows_for_names_and_key_shaped_cells():
    rows = [
        ["Monday", "Alex", "w1_ne", "notes", "W2"],
        ["Tuesday", "12", "W3"],
        ["Sam", "W4_SE_TL, W5"],
    ]
    result = extract_detailed(rows)

    assert result.strategy == "fallback"
    assert result.mapping == {"W1_NE": "Alex", "W2": "Alex", "W4_SE_TL": "Sam", "W5": "Sam"}


def test_no_match_returns_empty_mapping():
    result = extract_detailed([["12", "34"], ["", "W1"]])
    assert result.strategy == "none"
    assert result.mapping == {}
    assert extract([]) == {}


def test_name_matcher_rejects_weekdays_digits_and_lengths():
    names = NameMatcher()
    assert names("Alex") == "Alex"
    assert names("Mary Ann") == "Mary Ann"
    assert names("Thursday") is None
    assert names("sat") is None
    assert names("Route 9") is None
    assert names("A") is None
    assert names("x" * 32) is None


def test_merge_prefers_sheet_entries_over_seed():
    merged = merge_assignments({"w01": "Seed Driver", "W2": "Seed Driver"}, {"W1": "Alex"})
    assert merged == {"W1": "Alex", "W2": "Seed Driver"}
