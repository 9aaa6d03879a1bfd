"""
Tests des exports JSON / CSV, du rapport qualité et de l'upload S3.

Execute : pytest tests/test_export.py -v
"""

import json

import numpy as np

from pluviorn.export import (
    quality_report,
    records_to_dicts,
    sanitize_for_json,
    to_csv_text,
    to_json_text,
    upload_outputs,
    write_bulletin_outputs,
    write_inmet_outputs,
)
from pluviorn.records import BULLETIN_COLUMNS, INMET_COLUMNS, PrecipRecord

INMET_ROWS = [
    PrecipRecord(source="INMET", municipio="NATAL", posto="NATAL", tipo_posto="Automatica",
                 horas="2025-11-03 12:00", precipitacao_mm=0.2, station_code="A304", lat=-5.83, lon=-35.2),
    PrecipRecord(source="INMET", posto="APODI", tipo_posto="automática",
                 horas="2025-11-03 13:00", precipitacao_mm=None, station_code="A318"),
]

BULLETIN_ROWS = [
    PrecipRecord(source="EMPARN", regiao="Leste Potiguar", municipio="Natal", posto="Posto X",
                 tipo_posto="Convencional", horas="10:00", precipitacao_mm=12.5),
]


class FakeS3:
    def __init__(self):
        self.objects = []

    def put_object(self, **kwargs):
        self.objects.append(kwargs)


# ============================================================
# TEST JSON
# ============================================================
class TestSanitizeForJson:
    def test_nan_to_none(self):
        assert sanitize_for_json(float("nan")) is None

    def test_inf_to_none(self):
        assert sanitize_for_json(float("-inf")) is None

    def test_numpy_int(self):
        result = sanitize_for_json(np.int64(3))
        assert result == 3
        assert isinstance(result, int)

    def test_recursif(self):
        assert sanitize_for_json({"a": [np.float64("nan"), 1.0]}) == {"a": [None, 1.0]}


class TestJson:
    def test_colonnes_bulletin(self):
        assert list(records_to_dicts(BULLETIN_ROWS, BULLETIN_COLUMNS)[0]) == BULLETIN_COLUMNS

    def test_null_explicite(self):
        data = json.loads(to_json_text(records_to_dicts(INMET_ROWS, INMET_COLUMNS)))
        assert data[1]["precipitacao_mm"] is None
        assert data[1]["lat"] is None

    def test_accents_conserves(self):
        assert "automática" in to_json_text(records_to_dicts(INMET_ROWS))


# ============================================================
# TEST CSV
# ============================================================
class TestCsv:
    def test_entete_inmet(self):
        header = to_csv_text(INMET_ROWS, INMET_COLUMNS).splitlines()[0]
        assert header == "source,regiao,municipio,posto,tipo_posto,horas,precipitacao_mm,station_code,lat,lon"

    def test_entete_bulletin(self):
        header = to_csv_text(BULLETIN_ROWS, BULLETIN_COLUMNS).splitlines()[0]
        assert header == "regiao,municipio,posto,tipo_posto,horas,precipitacao_mm"

    def test_null_cellule_vide(self):
        line = to_csv_text(INMET_ROWS, INMET_COLUMNS).splitlines()[2]
        assert line.startswith("INMET,,,APODI,")
        assert line.endswith(",A318,,")

    def test_nombre_de_lignes(self):
        assert len(to_csv_text(INMET_ROWS, INMET_COLUMNS).splitlines()) == 3

    def test_vide_entete_seule(self):
        assert to_csv_text([], BULLETIN_COLUMNS).strip() == ",".join(BULLETIN_COLUMNS)


# ============================================================
# TEST QUALITÉ
# ============================================================
class TestQualityReport:
    def test_vide(self):
        metrics = quality_report([])
        assert metrics["total_records"] == 0
        assert metrics["anomalies"] == ["Aucun enregistrement"]

    def test_comptages(self):
        metrics = quality_report(INMET_ROWS + BULLETIN_ROWS)
        assert metrics["total_records"] == 3
        assert metrics["records_per_source"] == {"INMET": 2, "EMPARN": 1}
        assert metrics["records_per_station"] == {"A304": 1, "A318": 1, "Posto X": 1}
        assert metrics["missing_precipitation"] == 1
        assert metrics["duplicates"] == 0
        assert metrics["anomalies"] == []

    def test_plage_horaire(self):
        metrics = quality_report(INMET_ROWS)
        assert metrics["timestamp_range"] == {"min": "2025-11-03 12:00", "max": "2025-11-03 13:00"}

    def test_taux_de_null(self):
        metrics = quality_report(INMET_ROWS)
        assert metrics["null_rates"]["regiao"] == 100.0
        assert metrics["null_rates"]["precipitacao_mm"] == 50.0
        assert metrics["null_rates"]["source"] == 0.0

    def test_doublons(self):
        metrics = quality_report(INMET_ROWS + INMET_ROWS[:1])
        assert metrics["duplicates"] == 1

    def test_valeur_suspecte(self):
        rows = [PrecipRecord(source="EMPARN", regiao="Oeste Potiguar", posto="P", precipitacao_mm=1234.5)]
        assert any("suspecte" in a for a in quality_report(rows)["anomalies"])

    def test_serialisable(self):
        json.dumps(quality_report(INMET_ROWS + BULLETIN_ROWS), allow_nan=False)


# ============================================================
# TEST FICHIERS / S3
# ============================================================
class TestWriteOutputs:
    def test_sorties_inmet(self, tmp_path):
        paths = write_inmet_outputs(tmp_path, INMET_ROWS)
        assert [p.name for p in paths] == ["inmet.json", "latest.json", "latest.csv", "quality.json"]
        assert json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))[0]["station_code"] == "A304"
        assert (tmp_path / "inmet.json").read_text(encoding="utf-8") == (tmp_path / "latest.json").read_text(encoding="utf-8")

    def test_sorties_bulletin(self, tmp_path):
        paths = write_bulletin_outputs(tmp_path / "emparn", 10970, BULLETIN_ROWS, rendered_html="<html/>")
        assert [p.name for p in paths] == ["rendered.html", "latest.json", "latest.csv", "quality.json"]
        payload = json.loads((tmp_path / "emparn" / "latest.json").read_text(encoding="utf-8"))
        assert payload["id"] == 10970
        assert payload["dados"][0]["precipitacao_mm"] == 12.5
        assert list(payload["dados"][0]) == BULLETIN_COLUMNS

    def test_sans_html(self, tmp_path):
        paths = write_bulletin_outputs(tmp_path, 10970, BULLETIN_ROWS)
        assert "rendered.html" not in [p.name for p in paths]


class TestUploadOutputs:
    def test_upload(self, tmp_path):
        paths = write_bulletin_outputs(tmp_path, 10970, BULLETIN_ROWS, rendered_html="<html/>")
        s3 = FakeS3()
        keys = upload_outputs(paths, "bucket", "processed/pluviometria/emparn/", s3=s3)
        assert keys[1] == "processed/pluviometria/emparn/latest.json"
        assert [o["Bucket"] for o in s3.objects] == ["bucket"] * 4
        types = {o["Key"].rsplit("/", 1)[-1]: o["ContentType"] for o in s3.objects}
        assert types["latest.json"] == "application/json"
        assert types["latest.csv"].startswith("text/csv")
        assert types["rendered.html"].startswith("text/html")
