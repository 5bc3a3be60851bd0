from datetime import date

from gonzaapp.services.export_xlsx import COLUMNS, export_filename, export_row, sort_oldest_first


def test_export_row_uses_adjusted_price_and_labels():
    row = export_row({
        "fecha": "2024-03-05T15:30:00Z", "placa": "abc12d", "pagado": False,
        "comisionExtra": True, "rappi": True, "precioNeto": 100000, "tarifaServicio": 20000,
    })
    assert len(row) == len(COLUMNS)
    col = {name: i for i, (name, _) in enumerate(COLUMNS)}
    assert row[col["Fecha"]] == "05/03/2024 10:30"
    assert row[col["Placa"]] == "ABC12D"
    assert row[col["Pagado"]] == "No"
    assert row[col["Comisión Extra"]] == "Sí"
    assert row[col["Precio Neto"]] == 130000.0
    assert row[col["4x1000"]] == -520.0
    assert row[col["Ganancia Bruta"]] == 20480.0


def test_sort_oldest_first():
    rows = [{"fecha": "2024-01-02T00:00:00Z"}, {"fecha": "2024-01-01T00:00:00Z"}]
    assert [r["fecha"][:10] for r in sort_oldest_first(rows)] == ["2024-01-01", "2024-01-02"]


def test_export_filename():
    assert export_filename(date(2024, 1, 5), date(2024, 2, 10)) == "registros_05-01-2024_a_10-02-2024.xlsx"
