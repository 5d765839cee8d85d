# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from .fakes import RecordingDocPublisher, RecordingSnippetPublisher

DOC_TEST = """\
package io.prismic;

public class DocTest extends TestCase
{
  public void testApi() {
    // startgist:9b08c18ad53ba62736b7:prismic-api.java
    Api api = Api.get("https://lesbonneschoses.prismic.io/api");
    // endgist
    assertEquals(api.getRefs().size(), 1);
  }

  public void testSimpleQuery() {
    // startgist:e3f35b01edbd553ca60a:prismic-simplequery.java
    Api api = Api.get("https://lesbonneschoses.prismic.io/api");
    Response response = api.getForm("everything")
                           .ref(api.getMaster())
                           .submit();
    // endgist
    assertEquals(response.getTotalResultsSize(), 16);
  }
}
"""

SNIPPET_PATH = "src/test/java/io/prismic/DocTest.java"


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    A project checkout with generated javadoc and the snippet source, used as cwd.
    """
    monkeypatch.chdir(tmp_path)
    docs = tmp_path / "target" / "apidocs"
    (docs / "io" / "prismic").mkdir(parents=True)
    (docs / "index.html").write_text("<html>index</html>", encoding="utf-8")
    (docs / "io" / "prismic" / "Api.html").write_text("<html>Api</html>", encoding="utf-8")

    snippet = tmp_path / SNIPPET_PATH
    snippet.parent.mkdir(parents=True)
    snippet.write_text(DOC_TEST, encoding="utf-8")
    return tmp_path


@pytest.fixture()
def publishers() -> SimpleNamespace:
    return SimpleNamespace(doc=RecordingDocPublisher(), gist=RecordingSnippetPublisher())


@pytest.fixture()
def params(workspace: Path, publishers: SimpleNamespace) -> dict:
    return {
        "project": {"state_dir": str(workspace / ".state")},
        "publishers": {"doc": publishers.doc, "gist": publishers.gist},
    }


@pytest.fixture()
def state_params(tmp_path: Path) -> dict:
    """Params that only redirect run state into the test's tmp dir."""
    return {"project": {"state_dir": str(tmp_path / ".state")}}
