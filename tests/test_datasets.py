import csv
import io
import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.datasets import (
    Dataset,
    generate_header_dataset,
    normalise_headers,
    render_formats,
    to_csv,
    to_json,
    to_sql,
)


def test_generated_cells_follow_row_and_column_positions():
    dataset = generate_header_dataset(["Project Name", "Owner"], rows=2)

    assert dataset.columns == ["Project Name", "Owner"]
    assert dataset.rows == [
        {"Project Name": "Project Name value 1", "Owner": "Owner value 2"},
        {"Project Name": "Project Name value 2", "Owner": "Owner value 4"},
    ]


@pytest.mark.parametrize("requested, produced", [(0, 1), (-3, 1), (7, 7), (50, 50), (500, 50)])
def test_row_count_is_clamped(requested: int, produced: int):
    assert len(generate_header_dataset(["A"], rows=requested).rows) == produced


def test_normalise_headers_trims_and_dedupes():
    assert normalise_headers(["  Owner ", "", "Owner", "Due Date", "   "]) == ["Owner", "Due Date"]


def test_csv_quotes_commas_quotes_and_newlines():
    dataset = Dataset(
        columns=["name", "note"],
        rows=[
            {"name": "Smith, Jane", "note": 'said "hi"'},
            {"name": "plain", "note": "line one\nline two"},
        ],
    )

    text = to_csv(dataset)

    assert text.splitlines()[0] == "name,note"
    assert text.splitlines()[1] == '"Smith, Jane","said ""hi"""'
    assert not text.endswith("\n")
    assert list(csv.reader(io.StringIO(text)))[2] == ["plain", "line one\nline two"]


def test_missing_and_null_cells_render_empty():
    dataset = Dataset(columns=["a", "b"], rows=[{"a": None}])

    assert to_csv(dataset) == "a,b\n,"
    assert json.loads(to_json(dataset)) == [{"a": "", "b": ""}]


def test_json_is_pretty_printed_strings():
    dataset = Dataset(columns=["n"], rows=[{"n": 3}])

    assert to_json(dataset) == '[\n  {\n    "n": "3"\n  }\n]'


def test_sql_escapes_single_quotes():
    dataset = Dataset(columns=["name", "city"], rows=[{"name": "O'Brien", "city": "Cork"}, {"name": "x", "city": "y"}])

    assert to_sql(dataset) == (
        'INSERT INTO generated_data ("name", "city")\n'
        "VALUES\n"
        "  ('O''Brien', 'Cork'),\n"
        "  ('x', 'y');"
    )


def test_render_formats_targets_schema_tables():
    formats = render_formats(generate_header_dataset(["Owner"], rows=1))

    assert set(formats) == {"csv", "json", "sql", "neon", "supabase"}
    assert formats["sql"].startswith("INSERT INTO generated_data ")
    assert formats["neon"].startswith("INSERT INTO public.generated_data ")
    assert formats["supabase"] == formats["neon"]


def test_empty_dataset_renders_nothing():
    assert render_formats(Dataset(columns=["a"])) == {"csv": "", "json": "", "sql": "", "neon": "", "supabase": ""}
