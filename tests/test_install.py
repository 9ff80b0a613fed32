import pytest

from conftest import package_toml
from paket.checker import InstalledDependencyChecker, requirement_satisfied
from paket.exceptions import BatchResolveError, PaketFileNotFoundError
from paket.install import InstallResolver
from paket.manifest import parse_manifest
from paket.models import DependencyStatus, PaketExistence
from paket.store import InstalledRecord, InstalledStore
from paket.version import PaketVersion


class CountingChecker:
    def __init__(self, status: DependencyStatus | None = None):
        self.calls = 0
        self.status = status or DependencyStatus.valid()

    def check(self, manifest):
        self.calls += 1
        return self.status


@pytest.fixture
def store(paths):
    return InstalledStore(paths)


def test_not_exists(store, make_archive):
    candidate = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/libfoo.so": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.NOT_EXISTS


def test_higher_version_installed(store, record, make_archive):
    record("foo", "1.0.0", "library")
    candidate = make_archive(package_toml("foo", "0.9.0", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.HIGHER_VERSION_INSTALLED


def test_lower_version_installed(store, record, make_archive):
    record("foo", "1.0.0", "library")
    candidate = make_archive(package_toml("foo", "1.1.0", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.LOWER_VERSION_INSTALLED


def test_same_version_installed(store, record, make_archive):
    record("foo", "1.0.0", "library")
    candidate = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.SAME_VERSION_INSTALLED


def test_same_version_by_embedded_manifest(store, record, make_archive):
    # file names differ in build metadata, the embedded versions compare equal
    record("foo", "1.0.0+build.1", "library")
    candidate = make_archive(package_toml("foo", "1.0.0+build.2", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.SAME_VERSION_INSTALLED


def test_other_role_partition_is_ignored(store, record, make_archive):
    record("foo", "2.0.0", "configuration")
    candidate = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.NOT_EXISTS


def test_name_prefix_does_not_match_longer_names(store, record, make_archive):
    record("foo_bar", "9.0.0", "library")
    candidate = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})

    assert InstallResolver(store).resolve(candidate) is PaketExistence.NOT_EXISTS


@pytest.mark.parametrize(("installed", "candidate"), [("1.0.0", "1.0.0"), ("2.0.0", "1.0.0")])
def test_blocked_candidates_skip_dependency_check(store, record, make_archive, installed, candidate):
    record("foo", installed, "library")
    archive = make_archive(package_toml("foo", candidate, "library"), {"usr/lib/x": ""})
    checker = CountingChecker()

    decision = InstallResolver(store, checker).evaluate(archive)

    assert checker.calls == 0
    assert decision.dependency_status is None
    assert decision.proceed is False


def test_eligible_candidate_is_checked(store, make_archive):
    archive = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})
    checker = CountingChecker(DependencyStatus.not_valid("missing bar"))

    decision = InstallResolver(store, checker).evaluate(archive)

    assert checker.calls == 1
    assert decision.existence is PaketExistence.NOT_EXISTS
    assert decision.proceed is False
    assert "missing bar" in decision.reason


def test_no_dependencies_proceeds(store, make_archive):
    archive = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})

    decision = InstallResolver(store).evaluate(archive)

    assert decision.dependency_status == DependencyStatus.valid()
    assert decision.proceed is True


def test_missing_manifest_member(tmp_path, store):
    import tarfile

    bogus = tmp_path / "bogus_1.0.0.paket"
    with tarfile.open(bogus, mode="w") as tar:
        info = tarfile.TarInfo("SHA256SUM")
        tar.addfile(info)

    with pytest.raises(PaketFileNotFoundError, match="Paket.toml"):
        InstallResolver(store).resolve(bogus)


def test_batch_fails_fast(store, make_archive, tmp_path):
    good = make_archive(package_toml("foo", "1.0.0", "library"), {"usr/lib/x": ""})
    missing = tmp_path / "missing_1.0.0.paket"
    checker = CountingChecker()

    with pytest.raises(BatchResolveError) as exc_info:
        InstallResolver(store, checker).resolve_batch([good, missing, good])

    assert exc_info.value.index == 1
    assert exc_info.value.path == missing
    assert isinstance(exc_info.value.__cause__, PaketFileNotFoundError)
    assert checker.calls == 1


def test_batch_in_order(store, make_archive):
    a = make_archive(package_toml("a", "1.0.0", "library"), {"usr/lib/a": ""})
    b = make_archive(package_toml("b", "1.0.0", "library"), {"usr/lib/b": ""})

    decisions = InstallResolver(store).resolve_batch([b, a])

    assert [d.manifest.name for d in decisions] == ["b", "a"]


@pytest.mark.parametrize(
    ("requirement", "version", "expected"),
    [
        ("*", "1.0.0", True),
        ("", "1.0.0", True),
        ("1.0.0", "1.0.0", True),
        ("=1.0.0", "1.0.1", False),
        (">=1.0.0", "1.2.0", True),
        (">=1.0.0, <2.0.0", "2.0.0", False),
        ("!=1.0.0", "1.0.0", False),
        ("<1.0.0", "1.0.0-rc.1", True),
    ],
)
def test_requirement_satisfied(requirement, version, expected):
    assert requirement_satisfied(requirement, PaketVersion.parse(version)) is expected


def test_requirement_unparsable():
    with pytest.raises(ValueError):
        requirement_satisfied(">= one", PaketVersion.parse("1.0.0"))


def app_with_deps(deps: str):
    return parse_manifest(
        package_toml(
            "viewer",
            "1.0.0",
            "application",
            f"""
            [application]
            executable = "viewer"

            [dependencies]
            {deps}
            """,
        )
    )


def test_checker_dependency_missing(store):
    status = InstalledDependencyChecker(store).check(app_with_deps('library = ["libgtk"]'))

    assert not status.is_valid
    assert "libgtk" in status.reason


def test_checker_dependency_installed(store, record):
    record("libgtk", "4.0.0", "library")

    status = InstalledDependencyChecker(store).check(app_with_deps('library = { libgtk = ">=4.0.0" }'))

    assert status.is_valid


def test_checker_version_requirement_not_met(store, record):
    record("libgtk", "3.24.0", "library")

    status = InstalledDependencyChecker(store).check(app_with_deps('library = { libgtk = ">=4.0.0" }'))

    assert not status.is_valid
    assert "3.24.0" in status.reason


def test_checker_application_dependency_in_script_partition(store, record):
    record("helper", "1.0.0", "script", '[script]\nexecutable = "helper"\n')

    status = InstalledDependencyChecker(store).check(app_with_deps('application = ["helper"]'))

    assert status.is_valid


def test_checker_transitive_dependency_missing(store, record):
    record("libgtk", "4.0.0", "library", '[dependencies]\nlibrary = ["libglib"]\n')

    status = InstalledDependencyChecker(store).check(app_with_deps('library = ["libgtk"]'))

    assert not status.is_valid
    assert "libglib" in status.reason


def test_checker_transitive_cycle_terminates(store, record):
    record("liba", "1.0.0", "library", '[dependencies]\nlibrary = ["libb"]\n')
    record("libb", "1.0.0", "library", '[dependencies]\nlibrary = ["liba"]\n')

    status = InstalledDependencyChecker(store).check(app_with_deps('library = ["liba"]'))

    assert status.is_valid


def test_record_file_names():
    from pathlib import Path

    record = InstalledRecord.from_path(Path("foo_bar_1.2.3.paket"), "library")
    assert record is not None
    assert (record.name, record.version) == ("foo_bar", "1.2.3")
    assert InstalledRecord.from_path(Path("README"), "library") is None


def test_checker_transitive_requirement_not_met(store, record):
    record("libglib", "2.70.0", "library")
    record("libgtk", "4.0.0", "library", '[dependencies]\nlibrary = { libglib = ">=2.80.0" }\n')

    status = InstalledDependencyChecker(store).check(app_with_deps('library = ["libgtk"]'))

    assert not status.is_valid
    assert "libglib" in status.reason
    assert ">=2.80.0" in status.reason


def test_checker_transitive_requirement_met(store, record):
    record("libglib", "2.80.1", "library")
    record("libgtk", "4.0.0", "library", '[dependencies]\nlibrary = { libglib = ">=2.80.0" }\n')

    status = InstalledDependencyChecker(store).check(app_with_deps('library = ["libgtk"]'))

    assert status.is_valid


def test_checker_same_name_in_two_versions(store, record):
    # "tool" is installed both as a script and as a library, in different versions
    record("tool", "1.0.0", "script", '[script]\nexecutable = "tool"\n')
    record("tool", "2.0.0", "library")

    status = InstalledDependencyChecker(store).check(
        app_with_deps('application = ["tool"]\n            library = ["tool"]')
    )

    assert not status.is_valid
    assert "several versions" in status.reason
    assert "1.0.0, 2.0.0" in status.reason
