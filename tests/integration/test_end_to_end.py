"""End-to-end runs of the sonarlaunch CLI against a local server."""

from __future__ import annotations

import hashlib
import io
import json
import logging
import sys
import tarfile
from pathlib import Path

import pytest

from sonarlaunch.bootstrap.cache import ArtifactCache
from sonarlaunch.cli.exit_codes import EXIT_LAUNCHER_ERROR, EXIT_SUCCESS
from sonarlaunch.cli.runner import main
from sonarlaunch.core.models import ArtifactRef
from sonarlaunch.engine.log_bridge import ENGINE_LOGGER_NAME
pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake java binaries are shebang scripts")

ENGINE_BYTES = b"PK\x03\x04 scanner engine"

FAKE_JAVA = """
import json, os, sys
if sys.argv[1:] == ["-version"]:
    sys.stderr.write("openjdk version 17.0.10\\n")
    sys.exit(0)
payload = json.loads(sys.stdin.read())
with open(os.environ["RECORD_FILE"], "w") as f:
    json.dump({"argv": sys.argv[1:], "payload": payload, "token": os.environ.get("SONAR_TOKEN")}, f)
print("Scanner engine starting")
print(json.dumps({"level": "INFO", "formattedMessage": "hello"}))
print(json.dumps({"level": "ERROR", "formattedMessage": "failed", "throwable": "Trace"}))
sys.exit(int(payload["scannerProperties"].get("fake.exit", "0")))
"""


@pytest.fixture
def record_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "record.json"
    monkeypatch.setenv("RECORD_FILE", str(path))
    return path


@pytest.fixture
def system_java(make_script, monkeypatch: pytest.MonkeyPatch) -> Path:
    java = make_script(FAKE_JAVA, name="java")
    monkeypatch.setenv("PATH", str(java.parent))
    return java


@pytest.fixture
def engine_digest(sonar_server) -> str:
    digest = hashlib.md5(ENGINE_BYTES).hexdigest()
    sonar_server.add("/batch/index", f"scanner-engine.jar|{digest}\n")
    sonar_server.add("/batch/file?name=scanner-engine.jar", ENGINE_BYTES)
    return digest


def _jre_archive() -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        data = (f"#!{sys.executable}\n" + FAKE_JAVA).encode("utf-8")
        info = tarfile.TarInfo("jdk-17.0.10/bin/java")
        info.size = len(data)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class TestEndToEnd:
    """Full CLI runs."""

    def test_old_server_uses_system_java(
        self, sonar_server, sonar_home, engine_digest, system_java, record_file, tmp_path, capsys, caplog
    ) -> None:
        sonar_server.add("/api/server/version", "10.4.1.88267")
        project = tmp_path / "project"
        project.mkdir()

        with caplog.at_level(logging.INFO):
            code = main([
                "--server-url", sonar_server.url,
                "--token", "squ_e2e_token",
                "-Dsonar.projectKey=demo",
                str(project),
            ])

        assert code == EXIT_SUCCESS
        record = json.loads(record_file.read_text())
        properties = record["payload"]["scannerProperties"]
        assert properties["sonar.projectKey"] == "demo"
        assert properties["sonar.host.url"] == sonar_server.url
        assert "sonar.token" not in properties
        assert record["token"] == "squ_e2e_token"
        assert record["argv"][-1] == str(
            ArtifactCache(sonar_home / "cache").materialize(ArtifactRef(engine_digest, "scanner-engine.jar"))
        )
        assert sonar_server.requested("/api/v2/analysis/jres") == []

        engine_messages = [r.getMessage() for r in caplog.records if r.name == ENGINE_LOGGER_NAME]
        assert engine_messages == ["hello", "failed"]
        out = capsys.readouterr().out
        assert "Scanner engine starting\n" in out
        assert out.endswith("Trace")

    def test_provisioned_runtime_and_warm_cache(
        self, sonar_server, sonar_home, engine_digest, record_file, tmp_path, monkeypatch
    ) -> None:
        empty_path = tmp_path / "no-java-here"
        empty_path.mkdir()
        monkeypatch.setenv("PATH", str(empty_path))
        archive = _jre_archive()
        sonar_server.add("/api/server/version", "2025.1.0.102418")
        sonar_server.add(
            "/api/v2/analysis/jres?os=linux&arch=x64",
            json.dumps([{
                "id": "jre-17",
                "filename": "jre-17-linux-x64.tar.gz",
                "sha256": hashlib.sha256(archive).hexdigest(),
                "javaPath": "jdk-17.0.10/bin/java",
                "os": "linux",
                "arch": "x64",
            }]),
        )
        sonar_server.add("/api/v2/analysis/jres?filename=jre-17-linux-x64.tar.gz", archive)
        project = tmp_path / "project"
        project.mkdir()
        argv = ["--server-url", sonar_server.url, "-Dsonar.projectKey=demo", str(project)]

        with monkeypatch.context() as m:
            m.setattr("sonarlaunch.bootstrap.platform.platform.system", lambda: "Linux")
            m.setattr("sonarlaunch.bootstrap.platform.platform.machine", lambda: "x86_64")
            m.setattr("sonarlaunch.bootstrap.platform.is_alpine_linux", lambda: False)
            assert main(argv) == EXIT_SUCCESS
            sonar_server.requests.clear()
            assert main(argv) == EXIT_SUCCESS

        assert record_file.exists()
        assert sonar_server.requested("filename=") == []
        assert sonar_server.requested("/batch/file") == []

    def test_engine_failure_exit_code(
        self, sonar_server, sonar_home, engine_digest, system_java, record_file, tmp_path
    ) -> None:
        sonar_server.add("/api/server/version", "10.4")
        project = tmp_path / "project"
        project.mkdir()

        code = main(["--server-url", sonar_server.url, "-Dfake.exit=3", str(project)])

        assert code == 3

    def test_corrupted_engine_download(
        self, sonar_server, sonar_home, engine_digest, system_java, record_file, tmp_path
    ) -> None:
        sonar_server.add("/api/server/version", "10.4")
        sonar_server.add("/batch/file?name=scanner-engine.jar", b"corrupted")
        project = tmp_path / "project"
        project.mkdir()

        code = main(["--server-url", sonar_server.url, str(project)])

        assert code == EXIT_LAUNCHER_ERROR
        assert not record_file.exists()
        cache = ArtifactCache(sonar_home / "cache")
        assert cache.locate(ArtifactRef(engine_digest, "scanner-engine.jar")) is None
