from filter_relay.config import Settings, settings


class TestConfigDefaults:
    def test_app_name(self) -> None:
        assert settings.app_name == "image-filter-relay"

    def test_debug_default(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.debug is False

    def test_port_default(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.port == 8080

    def test_log_level_default(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.log_level == "info"

    def test_cors_origins_default(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.cors_origins == ["*"]

    def test_max_upload_bytes(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.max_upload_bytes == 50 * 1024 * 1024

    def test_openai_model(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.openai_model == "gpt-image-1"

    def test_retry_policy_defaults(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.notify_max_attempts == 3
        assert s.notify_backoff_initial == 1.0

    def test_firestore_collection(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.firestore_collection == "user_tokens"

    def test_auth_enabled_default(self) -> None:
        s = Settings(uploads_path="/tmp/test")
        assert s.auth_enabled is True


class TestConfigOverrides:
    def test_env_override(self, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.setenv("NOTIFY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("GCS_BUCKET_NAME", "other-bucket")
        s = Settings()
        assert s.notify_max_attempts == 5
        assert s.gcs_bucket_name == "other-bucket"
