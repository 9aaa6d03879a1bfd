"""
Tests de la configuration par variables d'environnement.

Execute : pytest tests/test_config.py -v
"""

from datetime import date

import pytest

from pluviorn.config import BULLETIN_BASE_ID, DEFAULT_S3_PREFIX, Settings

class TestSettings:
    def test_defauts(self, clean_env):
        s = Settings.from_env(dotenv=False)
        assert s.uf == "RN"
        assert s.days == 3
        assert s.forced_date is None
        assert s.bulletin_base_id == BULLETIN_BASE_ID
        assert s.inmet_chunk_days is None
        assert s.s3_bucket is None
        assert s.mongo_uri is None
        assert s.s3_prefix == DEFAULT_S3_PREFIX

    def test_surcharge(self, clean_env):
        clean_env.setenv("UF", "pb")
        clean_env.setenv("DIAS", "7")
        clean_env.setenv("FORCED_DATE", "03/11/2025")
        clean_env.setenv("BULLETIN_BASE_DATE", "2026-01-01")
        clean_env.setenv("BULLETIN_BASE_ID", "11029")
        clean_env.setenv("MIRROR_ORIGIN", "https://mirror.example/")
        clean_env.setenv("INMET_CHUNK_DAYS", "2")
        clean_env.setenv("LOG_LEVEL", "debug")
        s = Settings.from_env(dotenv=False)
        assert s.uf == "PB"
        assert s.days == 7
        assert s.forced_date == "03/11/2025"
        assert s.bulletin_base_date == date(2026, 1, 1)
        assert s.bulletin_base_id == 11029
        assert s.mirror_origin == "https://mirror.example"
        assert s.inmet_chunk_days == 2
        assert s.log_level == "DEBUG"

    def test_jours_minimum(self, clean_env):
        clean_env.setenv("DIAS", "0")
        assert Settings.from_env(dotenv=False).days == 1

    def test_sinks_vides_desactives(self, clean_env):
        clean_env.setenv("S3_BUCKET", "  ")
        clean_env.setenv("MONGO_URI", "")
        s = Settings.from_env(dotenv=False)
        assert s.s3_bucket is None
        assert s.mongo_uri is None

    def test_entier_invalide(self, clean_env):
        clean_env.setenv("DIAS", "trois")
        with pytest.raises(SystemExit):
            Settings.from_env(dotenv=False)

    def test_date_invalide(self, clean_env):
        clean_env.setenv("BULLETIN_BASE_DATE", "29/10/2025")
        with pytest.raises(SystemExit):
            Settings.from_env(dotenv=False)
