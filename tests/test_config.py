from promptlab.config import Settings


def test_defaults():
    s = Settings()
    assert s.auth_token_prefix == "mock-"
    assert s.prompt_delete_policy == "block"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PROMPTLAB_PROMPT_DELETE_POLICY", "cascade")
    monkeypatch.setenv("PROMPTLAB_DATABASE_URL", "sqlite://")
    s = Settings()
    assert s.prompt_delete_policy == "cascade"
    assert s.database_url == "sqlite://"
