from jobscheduler.settings import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.completion_delay_seconds == 3.0
    assert s.port == 5000
    assert s.database_url is None
    assert s.seed_sample_jobs is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WEBHOOK_URL", "https://example.test/hook")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("COMPLETION_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("SEED_SAMPLE_JOBS", "true")
    s = Settings(_env_file=None)
    assert s.webhook_url == "https://example.test/hook"
    assert s.port == 8080
    assert s.completion_delay_seconds == 0.5
    assert s.seed_sample_jobs is True
