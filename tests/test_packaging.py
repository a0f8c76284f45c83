import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parents[1] / "pyproject.toml"


def test_project_metadata():
    with PYPROJECT.open("rb") as f:
        project = tomllib.load(f)["project"]

    assert "readme" not in project
    names = {dep.split(">")[0].split(";")[0].strip() for dep in project["dependencies"]}
    assert names == {"click", "rich", "inotify-simple"}
    assert project["scripts"]["wsg"] == "wsgraph.cli:main"
