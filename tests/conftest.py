"""Shared test fixtures for layerguard."""

import pytest

from layerguard.graph.models import ImportRecord, ModuleDescriptor
from layerguard.models import SourceSpan


def _module(path, *targets, layer=None):
    imports = tuple(
        ImportRecord(target=t, location=SourceSpan(path, i + 1, 1)) for i, t in enumerate(targets)
    )
    return ModuleDescriptor(path=path, imports=imports, layer=layer)


@pytest.fixture
def clean_project():
    """Conventional layout with dependencies pointing inward only."""
    return [
        _module("lib/domain/entities/user.dart"),
        _module("lib/domain/repositories/user_repository.dart", "lib/domain/entities/user.dart"),
        _module(
            "lib/data/repositories/user_repository_impl.dart",
            "lib/domain/repositories/user_repository.dart",
            "package:http/http.dart",
        ),
        _module(
            "lib/presentation/pages/profile_page.dart",
            "lib/domain/entities/user.dart",
            "package:flutter/material.dart",
        ),
    ]


@pytest.fixture
def layered_cycle():
    """Presentation -> Domain -> Presentation loop through three top-level modules."""
    return [
        _module("a.py", "b", layer="presentation"),
        _module("b.py", "c", layer="domain"),
        _module("c.py", "a", layer="presentation"),
    ]


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Empty HOME and cwd, no LAYERGUARD_* variables: only defaults apply."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.chdir(work)
    for name in (
        "LAYERGUARD_LAYER_SEGMENTS",
        "LAYERGUARD_POLICY",
        "LAYERGUARD_USE_DEFAULT_POLICY",
        "LAYERGUARD_EXEMPT_LAYERS",
        "LAYERGUARD_LEAK_MARKERS",
        "LAYERGUARD_INTERNAL_SEGMENTS",
        "LAYERGUARD_COMPOSITION_ROOTS",
        "LAYERGUARD_SHARED_SEGMENTS",
        "LAYERGUARD_SEVERITIES",
        "LAYERGUARD_ENABLED_CHECKS",
        "LAYERGUARD_FAIL_ON_CYCLE_ONLY",
        "LAYERGUARD_WORKERS",
        "LAYERGUARD_VERBOSITY",
    ):
        monkeypatch.delenv(name, raising=False)
    return work
