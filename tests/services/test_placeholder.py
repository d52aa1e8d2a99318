import os
from pathlib import Path

import pytest

from cfpulse.errors import PlaceholderError
from cfpulse.models import RuntimeFamily, RuntimeIdentity
from cfpulse.services.filesystem import FileSystemService
from cfpulse.services.placeholder import BuildpackPlaceholderGenerator


class DummyLogger:
    def __init__(self):
        self.infos = []

    def debug(self, *_args, **_kwargs):
        return None

    def info(self, message, *args, **_kwargs):
        self.infos.append(message % args)

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def build_generator(tmp_path, logger=None):
    logger = logger or DummyLogger()
    filesystem = FileSystemService(logger=logger, console=DummyConsole())
    return BuildpackPlaceholderGenerator(filesystem, logger, temp_root=str(tmp_path))


EXPECTED_FILES = {
    "java_buildpack": {
        "META-INF/MANIFEST.MF",
        "pom.xml",
        "src/main/java/placeholder/PlaceholderApplication.java",
    },
    "nodejs_buildpack": {"package.json", "server.js"},
    "python_buildpack": {"requirements.txt", "Procfile", "app.py"},
    "go_buildpack": {"go.mod", "main.go"},
    "php_buildpack": {"composer.json", "index.php"},
    "ruby_buildpack": {"Gemfile", "Gemfile.lock", "Procfile", "app.rb"},
    "staticfile_buildpack": {"index.html", "Staticfile"},
}


@pytest.mark.parametrize("buildpack,expected", sorted(EXPECTED_FILES.items()))
def test_generate_writes_family_files(tmp_path, buildpack, expected):
    runtime = RuntimeIdentity((buildpack,))

    artifact = build_generator(tmp_path).generate("billing-api-canary", runtime)

    relative = {item.relative_to(artifact.path).as_posix() for item in artifact.files()}
    assert relative == expected
    assert artifact.runtime == runtime
    assert artifact.app_name == "billing-api-canary"


def test_generate_names_temp_dir_after_family_and_app(tmp_path):
    artifact = build_generator(tmp_path).generate("billing-api-canary", RuntimeIdentity(("java_buildpack",)))

    assert artifact.path.parent == tmp_path
    assert artifact.path.name.startswith("cf-java-billing-api-canary-")


def test_java_manifest_declares_main_class(tmp_path):
    artifact = build_generator(tmp_path).generate("billing-api-canary", RuntimeIdentity(("java_buildpack",)))

    manifest = (artifact.path / "META-INF" / "MANIFEST.MF").read_text(encoding="utf-8")
    assert "Main-Class: placeholder.PlaceholderApplication" in manifest


def test_node_placeholder_uses_app_slug(tmp_path):
    artifact = build_generator(tmp_path).generate("Web Front", RuntimeIdentity(("nodejs_buildpack",)))

    package_json = (artifact.path / "package.json").read_text(encoding="utf-8")
    assert '"name": "web-front-placeholder"' in package_json
    assert "process.env.PORT" in (artifact.path / "server.js").read_text(encoding="utf-8")


def test_unknown_buildpack_falls_back_to_static(tmp_path):
    logger = DummyLogger()

    artifact = build_generator(tmp_path, logger).generate("tool", RuntimeIdentity(("binary_buildpack",)))

    assert artifact.runtime.family is RuntimeFamily.STATIC
    assert (artifact.path / "Staticfile").read_text(encoding="utf-8") == "root: .\n"
    assert any("binary_buildpack" in message for message in logger.infos)


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_generated_files_are_readable(tmp_path):
    artifact = build_generator(tmp_path).generate("api", RuntimeIdentity(("python_buildpack",)))

    assert oct(os.stat(artifact.path / "app.py").st_mode & 0o777) == oct(0o644)
    assert oct(os.stat(artifact.path).st_mode & 0o777) == oct(0o755)


def test_generate_failure_removes_partial_directory(tmp_path, monkeypatch):
    generator = build_generator(tmp_path)
    written = []

    def failing_write(path: Path, content: str):
        written.append(path)
        raise OSError("No space left on device")

    monkeypatch.setattr(generator.filesystem, "write_file", failing_write)

    with pytest.raises(PlaceholderError, match="No space left on device"):
        generator.generate("billing-api-canary", RuntimeIdentity(("nodejs_buildpack",)))

    assert written
    assert list(tmp_path.iterdir()) == []
