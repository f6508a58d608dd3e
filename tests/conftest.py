"""
Shared fixtures for compat-probe tests.
"""

import sys
import textwrap
import zipfile

import pytest

from compat_probe.cli_config import BuildConfig, ProbeConfig, reset_config

CLIENT_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0"
         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
         xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 http://maven.apache.org/xsd/maven-4.0.0.xsd">
    <modelVersion>4.0.0</modelVersion>
    <groupId>com.example</groupId>
    <artifactId>guava-client</artifactId>
    <version>0.0.1</version>
    <!-- library under test -->
    <dependencies>
        <dependency>
            <groupId>com.google.guava</groupId>
            <artifactId>guava</artifactId>
            <version>17.0</version>
        </dependency>
        <dependency>
            <groupId>junit</groupId>
            <artifactId>junit</artifactId>
            <version>4.12</version>
            <scope>test</scope>
        </dependency>
    </dependencies>
</project>
"""

MAVEN_LOG = """[INFO] Scanning for projects...
[INFO] --- maven-compiler-plugin:3.1:compile (default-compile) @ guava-client ---
[ERROR] /work/src/Noise.java:[1,1] reported before the summary
[INFO] BUILD FAILURE
[INFO] Total time:  2.345 s
[INFO] Finished at: 2024-01-01T00:00:00Z
[INFO] ------------------------------------------------------------------------
[ERROR] Failed to execute goal org.apache.maven.plugins:maven-compiler-plugin:3.1:compile (default-compile) on project guava-client: Compilation failure: Compilation failure:
[ERROR] /work/src/Foo.java:[10,5] cannot find symbol
[ERROR]   symbol:   class Bar
[ERROR]   location: class Foo
[ERROR] /work/src/Baz.java:[22,17] method of in class Qux cannot be applied to given types;
[ERROR]   required: int
[ERROR]   found: no arguments
[ERROR]   reason: actual and formal argument lists differ in length
[ERROR] -> [Help 1]
[ERROR] /work/src/After.java:[3,3] reported after the closing remark
[ERROR]
[ERROR] To see the full stack trace of the errors, re-run Maven with the -e switch.
"""


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from the default configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


@pytest.fixture
def client_pom_text():
    return CLIENT_POM


@pytest.fixture
def maven_log_lines():
    return MAVEN_LOG.splitlines()


@pytest.fixture
def pom_file(temp_dir):
    path = temp_dir / "pom.xml"
    path.write_text(CLIENT_POM, encoding="utf-8")
    return path


@pytest.fixture
def client_jar(temp_dir):
    """A client JAR laid out the way Maven packages it, pom.xml under META-INF."""
    jar_path = temp_dir / "guava-client-0.0.1.jar"
    with zipfile.ZipFile(jar_path, "w") as zf:
        zf.writestr("META-INF/", "")
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        zf.writestr("META-INF/maven/com.example/guava-client/pom.xml", CLIENT_POM)
        zf.writestr(
            "META-INF/maven/com.example/guava-client/pom.properties",
            "groupId=com.example\nartifactId=guava-client\nversion=0.0.1\n",
        )
        zf.writestr("com/example/Client.class", b"\xca\xfe\xba\xbe")
    return jar_path


def fake_maven_config(output: str, exit_status: int = 1) -> BuildConfig:
    """A BuildConfig whose 'Maven' is the current interpreter printing ``output``."""
    script = textwrap.dedent(
        f"""
        import os, sys
        sys.stdout.write({output!r})
        sys.stdout.write("[INFO] cwd=" + os.getcwd() + "\\n")
        sys.exit({exit_status})
        """
    )
    return BuildConfig(maven_executable=sys.executable, goals=["-c", script])


@pytest.fixture
def fake_maven():
    return fake_maven_config


@pytest.fixture
def probe_config(temp_dir):
    config = ProbeConfig()
    config.resolver.local_repository = str(temp_dir / "local-repo")
    config.build = fake_maven_config(MAVEN_LOG)
    return config
