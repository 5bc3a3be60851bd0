import json
import os

from gonzaapp.services.settings_store import DEFAULT_SETTINGS, load_settings, sanitize_settings, save_settings


def test_defaults_when_missing():
    assert load_settings() == DEFAULT_SETTINGS


def test_save_and_load():
    cfg = load_settings()
    cfg["empresa"]["nombre"] = "Tramites Gonza"
    cfg["bancos"] = ["Nequi", "  ", "Efectivo"]
    cfg["tabla"]["refresh_segundos"] = "45"
    save_settings(cfg)
    loaded = load_settings()
    assert loaded["empresa"]["nombre"] == "Tramites Gonza"
    assert loaded["bancos"] == ["Nequi", "Efectivo"]
    assert loaded["tabla"]["refresh_segundos"] == 45


def test_sanitize_drops_unknown_and_bad_values():
    clean = sanitize_settings({
        "empresa": {"nombre": "X", "otro": "y"},
        "bancos": [],
        "tabla": {"refresh_segundos": "nada", "tramite_por_defecto": "  "},
        "extra": 1,
    })
    assert clean["empresa"] == {"nombre": "X", "ciudad": "", "nit": ""}
    assert clean["bancos"] == DEFAULT_SETTINGS["bancos"]
    assert clean["tabla"] == DEFAULT_SETTINGS["tabla"]
    assert "extra" not in clean


def test_negative_refresh_is_clamped():
    assert sanitize_settings({"tabla": {"refresh_segundos": -5}})["tabla"]["refresh_segundos"] == 0


def test_corrupt_file_falls_back_to_defaults():
    path = os.environ["GONZAAPP_SETTINGS_PATH"]
    with open(path, "w", encoding="utf-8") as f:
        f.write("{no es json")
    assert load_settings() == DEFAULT_SETTINGS
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"tabla": {"tramite_por_defecto": "LICENCIA"}}, f)
    assert load_settings()["tabla"]["tramite_por_defecto"] == "LICENCIA"
