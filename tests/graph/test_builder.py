"""Tests for import resolution and module graph construction."""

import pytest

from layerguard.exceptions import GraphStateError
from layerguard.graph.builder import (
    ImportResolver,
    ModuleGraphBuilder,
    canonical_path,
    external_id,
    external_package,
)
from layerguard.graph.cycles import find_cycles
from layerguard.graph.models import ImportRecord, ModuleDescriptor
from layerguard.models import SourceSpan


def _module(path, *targets, layer=None):
    imports = tuple(
        ImportRecord(target=t, location=SourceSpan(path, i + 1, 1)) for i, t in enumerate(targets)
    )
    return ModuleDescriptor(path=path, imports=imports, layer=layer)


def _edge_list(graph):
    return [(e.source, e.target, e.location) for e in graph.edges()]


class TestCanonicalPath:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("lib/domain/user.dart", "lib/domain/user.dart"),
            ("./lib//domain/../data/x.dart", "lib/data/x.dart"),
            ("lib\\ui\\page.dart", "lib/ui/page.dart"),
            ("  src/a.py ", "src/a.py"),
            ("", ""),
            (".", ""),
        ],
    )
    def test_normalization(self, raw, expected):
        assert canonical_path(raw) == expected


class TestExternalIds:
    @pytest.mark.parametrize(
        "target,package",
        [
            ("package:flutter/material.dart", "flutter"),
            ("requests.adapters", "requests"),
            ("@scope/pkg/sub", "@scope/pkg"),
            ("lodash/fp", "lodash"),
            ("dart:async", "dart:async"),
            ("./missing.dart", "./missing.dart"),
            ("'numpy'", "numpy"),
        ],
    )
    def test_external_package(self, target, package):
        assert external_package(target) == package

    def test_external_id_prefix(self):
        assert external_id("package:http/http.dart") == "external:http"


class TestImportResolver:
    def test_relative_path(self):
        resolver = ImportResolver(["lib/ui/page.dart", "lib/ui/widgets/button.dart"])
        assert resolver.resolve("./widgets/button.dart", "lib/ui/page.dart") == "lib/ui/widgets/button.dart"

    def test_parent_relative_path(self):
        resolver = ImportResolver(["src/views/a.ts", "src/models/user.ts"])
        assert resolver.resolve("../models/user.ts", "src/views/a.ts") == "src/models/user.ts"

    def test_python_relative_import(self):
        resolver = ImportResolver(
            ["src/app/models.py", "src/app/base.py", "src/app/sub/x.py", "src/app/core/__init__.py"]
        )
        assert resolver.resolve(".base", "src/app/models.py") == "src/app/base.py"
        assert resolver.resolve("..core", "src/app/sub/x.py") == "src/app/core/__init__.py"

    def test_package_uri(self):
        resolver = ImportResolver(["lib/domain/user.dart", "lib/main.dart"], package_names=["app"])
        assert resolver.resolve("package:app/domain/user.dart", "lib/main.dart") == "lib/domain/user.dart"

    def test_package_uri_inferred_from_lib_parent(self):
        resolver = ImportResolver(["app/lib/domain/user.dart", "app/lib/main.dart"])
        assert (
            resolver.resolve("package:app/domain/user.dart", "app/lib/main.dart")
            == "app/lib/domain/user.dart"
        )

    def test_unnamed_top_level_lib_keeps_package_uris_external(self):
        resolver = ImportResolver(["lib/domain/user.dart", "lib/main.dart"])
        assert resolver.resolve("package:app/domain/user.dart", "lib/main.dart") is None

    def test_other_package_with_matching_file_stays_external(self):
        resolver = ImportResolver(
            ["lib/provider.dart", "lib/domain/entities/user.dart"], package_names=["app"]
        )
        assert resolver.resolve("package:provider/provider.dart", "lib/domain/entities/user.dart") is None
        assert resolver.resolve("package:app/provider.dart", "lib/domain/entities/user.dart") == (
            "lib/provider.dart"
        )

    def test_file_relative_to_importer(self):
        resolver = ImportResolver(["lib/ui/page.dart", "lib/ui/models/user.dart", "lib/ui/other.dart"])
        assert resolver.resolve("models/user.dart", "lib/ui/page.dart") == "lib/ui/models/user.dart"
        assert resolver.resolve("other.dart", "lib/ui/page.dart") == "lib/ui/other.dart"

    def test_project_path_when_not_relative_to_importer(self):
        resolver = ImportResolver(["src/app/x.py", "src/app/y.py"])
        assert resolver.resolve("src/app/x.py", "src/app/y.py") == "src/app/x.py"

    def test_package_uri_outside_project(self):
        resolver = ImportResolver(["lib/main.dart"])
        assert resolver.resolve("package:flutter/material.dart", "lib/main.dart") is None

    def test_dotted_import(self):
        resolver = ImportResolver(["src/app/domain/user.py", "src/app/main.py"])
        assert resolver.resolve("app.domain.user", "src/app/main.py") == "src/app/domain/user.py"

    def test_dotted_import_with_project_prefix(self):
        resolver = ImportResolver(["domain/user.py", "myproj/main.py"])
        assert resolver.resolve("myproj.domain.user", "myproj/main.py") == "domain/user.py"

    def test_third_party_not_stripped(self):
        resolver = ImportResolver(["app/utils.py", "app/main.py"])
        assert resolver.resolve("requests.utils", "app/main.py") is None

    def test_quoted_and_blank(self):
        resolver = ImportResolver(["lib/a.dart", "lib/b.dart"])
        assert resolver.resolve("'lib/a.dart'", "lib/b.dart") == "lib/a.dart"
        assert resolver.resolve("   ", "lib/b.dart") is None


class TestBuild:
    def test_internal_and_external_nodes(self, clean_project):
        graph = ModuleGraphBuilder().build(clean_project)

        assert graph.stats() == {"modules": 4, "external_modules": 2, "edges": 5}
        assert [m.id for m in graph.external_modules()] == ["external:flutter", "external:http"]
        assert graph.layer_of("external:http") == "external"
        assert graph.layer_of("lib/domain/repositories/user_repository.dart") == "domain"
        assert graph.layer_of("lib/data/repositories/user_repository_impl.dart") == "data"

    def test_explicit_layer_wins(self):
        graph = ModuleGraphBuilder().build([_module("lib/domain/a.dart", layer="Presentation")])
        assert graph.layer_of("lib/domain/a.dart") == "presentation"

    def test_custom_classifier(self):
        graph = ModuleGraphBuilder(classifier=lambda path: "core").build([_module("x/y.py")])
        assert graph.layer_of("x/y.py") == "core"

    def test_first_location_wins(self):
        path = "lib/ui/page.dart"
        descriptor = ModuleDescriptor(
            path=path,
            imports=(
                ImportRecord("package:http/http.dart", SourceSpan(path, 2, 1)),
                ImportRecord("package:http/retry.dart", SourceSpan(path, 5, 1)),
            ),
        )
        graph = ModuleGraphBuilder().build([descriptor])

        assert graph.edge_count == 1
        edge = graph.edge(path, "external:http")
        assert edge.location.line == 2
        assert edge.raw_import == "package:http/http.dart"

    def test_self_import_kept(self):
        graph = ModuleGraphBuilder().build([_module("a.py", "a")])
        assert graph.edge("a.py", "a.py") is not None

    def test_duplicate_descriptors_first_wins(self):
        builder = ModuleGraphBuilder()
        graph, skipped = builder.build_with_diagnostics(
            [_module("a/x.py", "a/y.py"), _module("a/y.py"), _module("./a/x.py")]
        )

        assert graph.edge("a/x.py", "a/y.py") is not None
        assert skipped == ["Skipping duplicate descriptor for a/x.py"]

    def test_descriptor_without_path_skipped(self):
        graph, skipped = ModuleGraphBuilder().build_with_diagnostics(
            [ModuleDescriptor(path=""), _module("a/x.py")]
        )
        assert list(graph.modules) == ["a/x.py"]
        assert len(skipped) == 1

    def test_malformed_imports_skipped(self, caplog):
        path = "lib/ui/page.dart"
        descriptor = ModuleDescriptor(
            path=path,
            imports=(
                ImportRecord("lib/domain/user.dart"),  # no location
                "lib/domain/user.dart",
                ImportRecord("", SourceSpan(path, 3, 1)),
                ImportRecord("lib/domain/user.dart", SourceSpan(path, 4, 1)),
            ),
        )
        with caplog.at_level("WARNING", logger="layerguard"):
            graph, skipped = ModuleGraphBuilder().build_with_diagnostics(
                [descriptor, _module("lib/domain/user.dart")]
            )

        assert graph.edge(path, "lib/domain/user.dart").location.line == 4
        assert len(skipped) == 3
        assert skipped[0].startswith("lib/ui/page.dart: skipping import #1")
        assert "missing location" in skipped[0]
        assert "skipping import" in caplog.text

    def test_imports_not_a_list(self):
        descriptor = ModuleDescriptor(path="a/x.py", imports="a/y.py")
        graph, skipped = ModuleGraphBuilder().build_with_diagnostics([descriptor, _module("a/y.py")])

        assert "a/x.py" in graph
        assert graph.edge_count == 0
        assert "imports must be a list" in skipped[0]

    def test_parallel_matches_sequential(self):
        descriptors = [
            _module(f"pkg/m{i:03d}.py", f"pkg/m{(i + 1) % 60:03d}.py", f"lib{i % 3}.client")
            for i in range(60)
        ]
        sequential = ModuleGraphBuilder(workers=1).build(descriptors)
        parallel = ModuleGraphBuilder(workers=4).build(descriptors)

        assert _edge_list(parallel) == _edge_list(sequential)
        assert dict(parallel.modules) == dict(sequential.modules)

    def test_third_party_package_does_not_close_a_cycle(self):
        graph = ModuleGraphBuilder(package_names=["app"]).build(
            [
                _module("lib/domain/entities/user.dart", "package:provider/provider.dart"),
                _module("lib/provider.dart", "package:app/domain/entities/user.dart"),
            ]
        )

        assert _edge_list(graph) == [
            (
                "lib/domain/entities/user.dart",
                "external:provider",
                SourceSpan("lib/domain/entities/user.dart", 1, 1),
            ),
            (
                "lib/provider.dart",
                "lib/domain/entities/user.dart",
                SourceSpan("lib/provider.dart", 1, 1),
            ),
        ]
        assert find_cycles(graph) == []

    def test_sibling_imports_form_a_cycle(self):
        graph = ModuleGraphBuilder().build(
            [
                _module("example/lib/bad_examples/circular_dependency_a.dart", "circular_dependency_b.dart"),
                _module("example/lib/bad_examples/circular_dependency_b.dart", "circular_dependency_a.dart"),
            ]
        )

        assert graph.stats()["external_modules"] == 0
        assert find_cycles(graph) == [
            (
                "example/lib/bad_examples/circular_dependency_a.dart",
                "example/lib/bad_examples/circular_dependency_b.dart",
            )
        ]

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            ModuleGraphBuilder(workers=0)


class TestIncremental:
    def _project(self):
        return [
            _module("app/a.py", "app/b.py", "requests"),
            _module("app/b.py", "app/c.py"),
            _module("app/c.py"),
        ]

    def test_update_matches_rebuild(self):
        builder = ModuleGraphBuilder()
        project = self._project()
        changed = _module("app/b.py", "app/a.py", "yaml")

        updated = builder.update(builder.build(project), changed)
        rebuilt = builder.rebuild([project[0], changed, project[2]])

        assert _edge_list(updated) == _edge_list(rebuilt)
        assert dict(updated.modules) == dict(rebuilt.modules)

    def test_update_prunes_unreferenced_externals(self):
        builder = ModuleGraphBuilder()
        graph = builder.build(self._project())
        updated = builder.update(graph, _module("app/a.py", "app/b.py"))

        assert "external:requests" in graph
        assert "external:requests" not in updated

    def test_update_leaves_original_snapshot(self):
        builder = ModuleGraphBuilder()
        graph = builder.build(self._project())
        builder.update(graph, _module("app/c.py", "app/a.py"))

        assert graph.edge("app/c.py", "app/a.py") is None

    def test_update_new_file(self):
        builder = ModuleGraphBuilder()
        updated = builder.update(builder.build(self._project()), _module("app/d.py", "app/a.py"))

        assert updated.edge("app/d.py", "app/a.py") is not None
        assert updated.stats()["modules"] == 4

    def test_update_without_path(self):
        builder = ModuleGraphBuilder()
        with pytest.raises(GraphStateError):
            builder.update(builder.build(self._project()), ModuleDescriptor(path=" "))

    def test_update_diagnostics(self):
        builder = ModuleGraphBuilder()
        _, skipped = builder.update_with_diagnostics(
            builder.build(self._project()),
            ModuleDescriptor(path="app/c.py", imports=(ImportRecord("app/a.py"),)),
        )
        assert skipped == ["app/c.py: skipping import #1: missing location for import 'app/a.py'"]

    def test_remove(self):
        builder = ModuleGraphBuilder()
        graph = builder.remove(builder.build(self._project()), "app/a.py")

        assert "app/a.py" not in graph
        assert "external:requests" not in graph
        assert graph.importers("app/b.py") == {}

    def test_remove_unknown_module(self):
        builder = ModuleGraphBuilder()
        with pytest.raises(GraphStateError):
            builder.remove(builder.build(self._project()), "app/zzz.py")
