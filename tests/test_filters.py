from datetime import date

from gonzaapp.services.filters import (
    date_range, filter_by_date_range, filter_totals_by_date_range, format_currency, group_by_date,
    normalize_text, page_for_date, search_records, search_totals,
)


def _rec(id_, fecha, **kw):
    base = {"id": id_, "fecha": fecha, "placa": "", "nombre": "", "asesor": "", "celular": None}
    base.update(kw)
    return base


RECORDS = [
    _rec("a", "2024-01-15T14:00:00Z", placa="ABC123", asesor="Ana"),
    _rec("b", "2024-01-16T03:00:00Z", placa="XYZ987", asesor="Luis"),   # 15 en Bogota
    _rec("c", "2024-01-16T15:00:00Z", placa="QWE456", asesor="ana maria"),
    _rec("d", "2024-01-14T20:00:00Z", placa="RTY111", nombre="Pérez"),
]


def test_group_by_date_newest_first():
    groups = group_by_date(RECORDS)
    assert [k for k, _ in groups] == ["2024-01-16", "2024-01-15", "2024-01-14"]
    day15 = dict(groups)["2024-01-15"]
    assert [r["id"] for r in day15] == ["b", "a"]


def test_group_skips_rows_without_date():
    assert group_by_date([_rec("x", None)]) == []


def test_search_is_case_insensitive_and_skips_fecha():
    assert [r["id"] for r in search_records(RECORDS, "ana")] == ["a", "c"]
    assert search_records(RECORDS, "2024") == []
    assert [r["id"] for r in search_records(RECORDS, "xyz")] == ["b"]


def test_search_empty_term_returns_all():
    assert len(search_records(RECORDS, "")) == 4
    assert len(search_records(RECORDS, None)) == 4


def test_filter_by_date_range_inclusive_bogota_days():
    ids = [r["id"] for r in filter_by_date_range(RECORDS, "2024-01-15", "2024-01-15")]
    assert sorted(ids) == ["a", "b"]
    ids = [r["id"] for r in filter_by_date_range(RECORDS, "2024-01-16", "2024-01-14")]
    assert sorted(ids) == ["a", "b", "c", "d"]


def test_filter_without_bounds_returns_all():
    assert len(filter_by_date_range(RECORDS, None, "2024-01-15")) == 4


def test_invalid_bounds_skip_the_filter():
    assert len(filter_by_date_range(RECORDS, "foo", "bar")) == 4
    assert len(filter_by_date_range(RECORDS, "2024-01-15", "15/01/2024")) == 4
    assert date_range("foo", "2024-01-15") is None


def test_date_range_orders_bounds():
    assert date_range("2024-01-16", "2024-01-14") == (date(2024, 1, 14), date(2024, 1, 16))
    assert date_range(date(2024, 1, 1), "2024-01-02T23:00") == (date(2024, 1, 1), date(2024, 1, 2))


def test_totals_filtered_with_same_rules():
    totals = [{"date": "2024-01-16"}, {"date": "2024-01-15"}, {"date": "2024-01-14"}]
    assert [t["date"] for t in filter_totals_by_date_range(totals, "2024-01-16", "2024-01-15")] == [
        "2024-01-16", "2024-01-15"]
    assert filter_totals_by_date_range(totals, "foo", "2024-01-15") == totals


def test_page_for_date():
    groups = group_by_date(RECORDS)
    assert page_for_date(groups, "2024-01-14") == 3
    assert page_for_date(groups, "2030-01-01") == 1
    assert page_for_date(groups, None) == 1


def test_normalize_text():
    assert normalize_text("Miércoles, 15 de Enero") == "miercoles15deenero"
    assert normalize_text("$ 1.200.000") == "1200000"
    assert normalize_text("-$ 400") == "400"


def test_format_currency():
    assert format_currency(1200000) == "$ 1.200.000"
    assert format_currency(-400) == "-$ 400"
    assert format_currency(None) == "$ 0"
    assert format_currency(999.5) == "$ 1.000"


TOTALS = [
    {"date": "2024-01-16", "transactionCount": 3, "precioNetoTotal": 300000.0,
     "tarifaServicioTotal": 45000.0, "impuesto4x1000Total": -1200.0, "gananciaBrutaTotal": 43800.0},
    {"date": "2024-01-15", "transactionCount": 1, "precioNetoTotal": 100000.0,
     "tarifaServicioTotal": 20000.0, "impuesto4x1000Total": -400.0, "gananciaBrutaTotal": 19600.0},
]


def test_search_totals_by_column_keyword():
    assert [t["date"] for t in search_totals(TOTALS, "impuesto 400")] == ["2024-01-15"]
    assert len(search_totals(TOTALS, "impuesto")) == 2


def test_search_totals_free_text():
    assert [t["date"] for t in search_totals(TOTALS, "16 de enero")] == ["2024-01-16"]
    assert [t["date"] for t in search_totals(TOTALS, "$300.000")] == ["2024-01-16"]
