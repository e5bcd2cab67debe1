from __future__ import annotations

import asyncio
import os

import pytest
from fakes import FakeCLI

from wendy_devtools.classifier import WendyProjectClassifier


def _write(folder: str, name: str, content: str) -> None:
    with open(os.path.join(folder, name), "w", encoding="utf-8") as f:
        f.write(content)


@pytest.mark.parametrize(
    "dependency",
    [
        '.package(url: "https://github.com/wendylabsinc/wendy-agent", from: "0.1.0")',
        '.package(url: "https://github.com/apache/wendy", branch: "main")',
        '.package(path: "../wendy-runtime")',
    ],
)
def test_manifest_dependency_marks_project(make_folder, dependency):
    folder = make_folder("app")
    _write(folder, "Package.swift", f"let package = Package(dependencies: [{dependency}])")

    assert asyncio.run(WendyProjectClassifier().is_managed_project(folder)) is True


def test_project_config_marks_project(make_folder):
    folder = make_folder("script", wendy=True)

    assert asyncio.run(WendyProjectClassifier().is_managed_project(folder)) is True


def test_plain_folder_without_cli_is_not_managed(make_folder):
    folder = make_folder("plain")
    _write(folder, "Package.swift", 'let package = Package(name: "Other")')

    assert asyncio.run(WendyProjectClassifier().is_managed_project(folder)) is False


@pytest.mark.parametrize(
    ("output", "expected"),
    [("Project: app", True), ("", False), ("Error: not a wendy project", False)],
)
def test_cli_info_is_the_last_resort(make_folder, output, expected):
    folder = make_folder("app")
    cli = FakeCLI(info_output=output)

    assert asyncio.run(WendyProjectClassifier(cli).is_managed_project(folder)) is expected
    assert cli.calls == [("info", folder)]


def test_cli_failure_means_not_managed(make_folder):
    folder = make_folder("app")
    cli = FakeCLI(info_output="Project: app")
    cli.failing.add("info")

    assert asyncio.run(WendyProjectClassifier(cli).is_managed_project(folder)) is False


def test_answers_are_memoized_until_forgotten(make_folder):
    folder = make_folder("app")
    cli = FakeCLI(info_output="Project: app")
    classifier = WendyProjectClassifier(cli)

    async def scenario():
        await classifier.is_managed_project(folder)
        await classifier.is_managed_project(folder + os.sep)
        classifier.forget(folder)
        await classifier.is_managed_project(folder)

    asyncio.run(scenario())
    assert cli.count("info") == 2
