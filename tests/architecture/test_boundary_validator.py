"""Tests for per-edge layer policy and implementation leakage checks."""

import pytest

from layerguard.architecture.models import PolicyEntry
from layerguard.architecture.policy import LayerPolicy
from layerguard.architecture.validator import BoundaryValidator
from layerguard.graph.builder import ModuleGraphBuilder
from layerguard.graph.models import ImportRecord, ModuleDescriptor
from layerguard.models import Severity, SourceSpan, ViolationKind


def _module(path, *targets, layer=None):
    imports = tuple(
        ImportRecord(target=t, location=SourceSpan(path, i + 1, 1)) for i, t in enumerate(targets)
    )
    return ModuleDescriptor(path=path, imports=imports, layer=layer)


def _graph(*descriptors):
    return ModuleGraphBuilder(workers=1).build(list(descriptors))


def _kinds(violations):
    return [v.kind for v in violations]


class TestLayerPolicyCheck:
    def test_domain_importing_data(self):
        graph = _graph(
            _module("lib/domain/user.dart", "lib/data/user_model.dart"),
            _module("lib/data/user_model.dart"),
        )
        violations = BoundaryValidator().validate(graph)

        assert len(violations) == 1
        v = violations[0]
        assert v.kind is ViolationKind.LAYER_VIOLATION
        assert v.path == ("lib/domain/user.dart", "lib/data/user_model.dart")
        assert v.location == SourceSpan("lib/domain/user.dart", 1, 1)
        assert v.message.startswith("Domain must not depend on Data")
        assert v.severity is Severity.ERROR
        assert "abstraction" in v.suggestion

    def test_allowed_direction(self):
        graph = _graph(
            _module("lib/presentation/page.dart", "lib/domain/user.dart"),
            _module("lib/data/repo.dart", "lib/domain/user.dart"),
            _module("lib/domain/user.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_same_layer_never_flagged(self):
        graph = _graph(
            _module("a.py", "b", layer="domain"),
            _module("b.py", "a", layer="domain"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_external_imports_exempt(self):
        graph = _graph(_module("lib/domain/user.dart", "package:http/http.dart", "dart:async"))
        assert BoundaryValidator().validate(graph) == []

    def test_unknown_layer_exempt(self):
        graph = _graph(
            _module("lib/domain/user.dart", "lib/helpers/clock.dart"),
            _module("lib/helpers/clock.dart", "lib/presentation/app.dart"),
            _module("lib/presentation/app.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_composition_root_may_wire_layers(self):
        graph = _graph(
            _module("lib/main.dart", "lib/data/repo.dart", layer="presentation"),
            _module("lib/presentation/di/injection.dart", "lib/data/repo.dart"),
            _module("lib/data/repo.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_shared_target_exempt(self):
        graph = _graph(
            _module("lib/domain/user.dart", "lib/data/utils/format.dart"),
            _module("lib/data/utils/format.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_duplicate_imports_reported_once(self):
        path = "lib/domain/user.dart"
        descriptor = ModuleDescriptor(
            path=path,
            imports=(
                ImportRecord("lib/data/model.dart", SourceSpan(path, 3, 1)),
                ImportRecord("lib/data/model.dart", SourceSpan(path, 9, 1)),
            ),
        )
        graph = _graph(descriptor, _module("lib/data/model.dart"))
        violations = BoundaryValidator().validate(graph)

        assert len(violations) == 1
        assert violations[0].location.line == 3

    def test_custom_policy(self):
        policy = LayerPolicy([PolicyEntry("api", "storage", False)])
        graph = _graph(
            _module("app/api.py", "app/storage.py", layer="api"),
            _module("app/storage.py", "app/api.py", layer="storage"),
        )
        violations = BoundaryValidator(policy=policy).validate(graph)

        assert len(violations) == 1
        assert violations[0].message == "Api must not depend on Storage: app/api.py imports app/storage.py"

    def test_configured_severity(self):
        graph = _graph(
            _module("lib/domain/user.dart", "lib/data/model.dart"),
            _module("lib/data/model.dart"),
        )
        violations = BoundaryValidator(layer_severity=Severity.WARNING).validate(graph)
        assert violations[0].severity is Severity.WARNING


class TestImplementationLeakage:
    @pytest.mark.parametrize(
        "path",
        [
            "lib/data/repositories/user_repository_impl.dart",
            "lib/data/impl.dart",
            "lib/data/cache_private.dart",
            "lib/data/internal/mapper.dart",
            "src/Data/_Internal/Mapper.py",
        ],
    )
    def test_implementation_details(self, path):
        assert BoundaryValidator().is_implementation_detail(path)

    @pytest.mark.parametrize(
        "path",
        ["lib/data/user_model.dart", "lib/domain/repositories/user_repository.dart"],
    )
    def test_public_modules(self, path):
        assert not BoundaryValidator().is_implementation_detail(path)

    def test_edge_can_breach_both_rules(self):
        graph = _graph(
            _module(
                "lib/presentation/page.dart",
                "lib/data/repositories/user_repository_impl.dart",
            ),
            _module("lib/data/repositories/user_repository_impl.dart"),
        )
        violations = BoundaryValidator().validate(graph)

        assert sorted(v.kind.value for v in violations) == [
            "boundary_crossing",
            "layer_violation",
        ]
        assert {v.path for v in violations} == {
            ("lib/presentation/page.dart", "lib/data/repositories/user_repository_impl.dart")
        }

    def test_leak_into_allowed_layer(self):
        graph = _graph(
            _module("lib/data/repo.dart", "lib/domain/internal/rules.dart"),
            _module("lib/domain/internal/rules.dart"),
        )
        violations = BoundaryValidator().validate(graph)

        assert _kinds(violations) == [ViolationKind.BOUNDARY_CROSSING]
        assert violations[0].severity is Severity.WARNING
        assert "implementation detail of the Domain layer" in violations[0].message

    def test_same_layer_implementation_import_allowed(self):
        graph = _graph(
            _module("lib/data/di_module.dart", "lib/data/repo_impl.dart"),
            _module("lib/data/repo_impl.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_unknown_source_exempt(self):
        graph = _graph(
            _module("tools/seed.dart", "lib/data/repo_impl.dart"),
            _module("lib/data/repo_impl.dart"),
        )
        assert BoundaryValidator().validate(graph) == []

    def test_checks_can_be_disabled(self):
        graph = _graph(
            _module("lib/presentation/page.dart", "lib/data/repo_impl.dart"),
            _module("lib/data/repo_impl.dart"),
        )
        layers_only = BoundaryValidator(check_leakage=False).validate(graph)
        leakage_only = BoundaryValidator(check_layers=False).validate(graph)

        assert _kinds(layers_only) == [ViolationKind.LAYER_VIOLATION]
        assert _kinds(leakage_only) == [ViolationKind.BOUNDARY_CROSSING]

    def test_custom_markers(self):
        validator = BoundaryValidator(leak_markers=["_concrete"], internal_segments=["hidden"])
        assert validator.is_implementation_detail("lib/data/repo_concrete.dart")
        assert validator.is_implementation_detail("lib/data/hidden/repo.dart")
        assert not validator.is_implementation_detail("lib/data/repo_impl.dart")
