import re
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from app.modules.gateway.filename import (
    filename_from_disposition,
    filename_from_url,
    format_attachment,
    parse_disposition,
    pick_filename,
)


def test_disposition_wins_over_url_path():
    name = pick_filename('attachment; filename="a.pdf"', "https://host/dir/report.csv")
    assert name == "a.pdf"


def test_url_path_segment_when_no_disposition():
    assert pick_filename(None, "https://host/dir/report.csv?x=1") == "report.csv"


def test_timestamp_fallback_when_nothing_usable():
    assert re.fullmatch(r"download-\d+", pick_filename(None, "https://host/"))


def test_path_segment_is_percent_decoded_and_skips_trailing_slash():
    assert filename_from_url("https://host/files/my%20report.pdf/") == "my report.pdf"
    assert filename_from_url("https://host/%E6%96%87%E4%BB%B6.pdf") == "文件.pdf"


@pytest.mark.parametrize("url", ["https://host/bad%zz.pdf", "https://host/bad%E0%A4.pdf"])
def test_malformed_percent_encoding_is_not_a_filename(url):
    assert filename_from_url(url) is None
    assert re.fullmatch(r"download-\d+", pick_filename(None, url))


def test_parse_disposition_token_and_quoted_values():
    assert parse_disposition("inline; filename=clip.mp4") == ("inline", {"filename": "clip.mp4"})
    assert parse_disposition('Attachment; filename="say \\"hi\\".txt"') == (
        "attachment",
        {"filename": 'say "hi".txt'},
    )


def test_extended_filename_takes_precedence():
    header = "attachment; filename=\"fallback.pdf\"; filename*=UTF-8''%E2%82%AC%20rates.pdf"
    assert filename_from_disposition(header) == "€ rates.pdf"


@pytest.mark.parametrize(
    "header",
    [
        "attachment; filename=",
        'attachment; filename="unterminated',
        "attachment; filename=a.pdf; filename=b.pdf",
        "attachment; filename*=KOI8-R''%E1",
        "attachment;",
        "; filename=a.pdf",
    ],
)
def test_malformed_disposition_yields_no_filename(header):
    assert filename_from_disposition(header) is None


def test_malformed_disposition_falls_back_to_url():
    assert pick_filename('attachment; filename="a.pdf', "https://host/b.pdf") == "b.pdf"


def test_disposition_without_filename_falls_back_to_url():
    assert pick_filename("inline", "https://host/media/track.mp3") == "track.mp3"


def test_format_attachment_plain_name():
    assert format_attachment("a.pdf") == 'attachment; filename="a.pdf"'
    assert format_attachment('say "hi".txt') == 'attachment; filename="say \\"hi\\".txt"'


def test_format_attachment_strips_directories():
    assert format_attachment("../../etc/passwd") == 'attachment; filename="passwd"'


def test_format_attachment_non_latin_name_gets_extended_parameter():
    assert format_attachment("文件.pdf") == (
        "attachment; filename=\"??.pdf\"; filename*=UTF-8''%E6%96%87%E4%BB%B6.pdf"
    )


def test_format_attachment_round_trips_through_parser():
    for name in ["a.pdf", "my report.pdf", "€ rates.pdf", 'q"uote.txt']:
        assert filename_from_disposition(format_attachment(name)) == name
