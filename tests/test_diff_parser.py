"""
Tests for diff_parser.
"""

from diff_parser import (
    extract_added_code,
    filter_files,
    find_nearest_line,
    parse_diff,
    should_review_file,
)


class TestParseDiff:
    def test_empty_diff(self) -> None:
        assert parse_diff("") == []
        assert parse_diff("   \n") == []

    def test_files_and_lines(self, sample_diff) -> None:
        files = parse_diff(sample_diff)
        assert [f.filename for f in files] == ["src/api.py", "README.md"]

        api = files[0]
        assert api.status == "modified"
        assert (api.additions, api.deletions, api.changes) == (3, 0, 3)
        assert [num for num, _ in api.added_lines] == [2, 5, 6]
        assert api.added_lines[0][1] == 'API_KEY = "sk-live-1234567890"'
        assert api.commentable_lines == {1, 2, 3, 4, 5, 6, 7}

    def test_extract_added_code(self, sample_diff) -> None:
        api = parse_diff(sample_diff)[0]
        numbered = extract_added_code(api)
        assert numbered.splitlines()[0] == '   2| API_KEY = "sk-live-1234567890"'
        assert extract_added_code(api, include_line_numbers=False).splitlines()[1] == '    print("debug", request)'


class TestFiltering:
    def test_should_review_file(self) -> None:
        assert should_review_file("src/app.py")
        assert not should_review_file("README.md")
        assert not should_review_file("package-lock.json")
        assert not should_review_file("web/node_modules/x/index.js")
        assert not should_review_file("dist/app.min.js")

    def test_filter_files(self, sample_diff) -> None:
        assert [f.filename for f in filter_files(parse_diff(sample_diff))] == ["src/api.py"]


class TestFindNearestLine:
    def test_exact_and_nearby(self) -> None:
        valid = {10, 11, 12}
        assert find_nearest_line(valid, 11) == 11
        assert find_nearest_line(valid, 14) == 12
        assert find_nearest_line(valid, 7) == 10

    def test_prefers_later_line_on_tie(self) -> None:
        assert find_nearest_line({8, 12}, 10) == 12

    def test_too_far(self) -> None:
        assert find_nearest_line({1}, 20) is None
        assert find_nearest_line(set(), 1) is None
