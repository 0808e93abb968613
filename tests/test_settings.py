import os

from wizardshell.settings import InstallSettings


class TestInstallSettings:
    def test_nothing_remembered_initially(self, settings):
        assert settings.last_path() == ""

    def test_remember_stores_base_directory(self, settings):
        settings.remember("/srv/apps/Acme/Rocket")
        assert settings.last_path() == "/srv/apps"

    def test_remembered_path_survives_a_new_instance(self, settings, qsettings):
        settings.remember("/srv/apps/Acme/Rocket")
        again = InstallSettings("Acme", "Rocket", qsettings)
        assert again.last_path() == "/srv/apps"

    def test_forget(self, settings):
        settings.remember("/srv/apps/Acme/Rocket")
        settings.forget()
        assert settings.last_path() == ""

    def test_compute_appends_publisher_and_title(self, settings):
        assert settings.compute_target_dir("/opt", "Rocket") == os.path.join("/opt", "Acme", "Rocket")

    def test_compute_keeps_existing_segments(self, settings):
        assert settings.compute_target_dir("/opt/Acme/Rocket", "Rocket") == "/opt/Acme/Rocket"

    def test_compute_prefers_remembered_path(self, settings):
        settings.remember("/srv/apps/Acme/Rocket")
        assert settings.compute_target_dir("/opt", "Rocket") == "/srv/apps/Acme/Rocket"

    def test_compute_returns_absolute_path(self, settings, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = settings.compute_target_dir("relative", "Rocket")
        assert os.path.isabs(result)
        assert result == os.path.join(os.getcwd(), "relative", "Acme", "Rocket")
