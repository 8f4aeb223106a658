import pytest

from edge_proxy.platforms import DEFAULT_PLATFORMS
from edge_proxy.platforms.transform import (
    PlatformFamily,
    strip_platform_prefix,
    transform_path,
)


class TestGenericPrefixStrip:
    @pytest.mark.parametrize(
        "provider, path, expected",
        [
            ("doh-cloudflare", "/doh/cloudflare/dns-query", "/dns-query"),
            ("doh-google", "/doh/google/resolve", "/resolve"),
            ("doh-quad9", "/doh/quad9/dns-query", "/dns-query"),
            ("doh-360", "/doh/360/dns-query", "/dns-query"),
            ("doh-controld", "/doh/controld/dns-query", "/dns-query"),
        ],
    )
    def test_doh_paths(self, provider, path, expected):
        assert transform_path(path, provider, DEFAULT_PLATFORMS) == expected

    def test_preserves_query(self):
        path = "/doh/cloudflare/dns-query?name=example.com&type=A&do=200"
        assert (
            transform_path(path, "doh-cloudflare", DEFAULT_PLATFORMS)
            == "/dns-query?name=example.com&type=A&do=200"
        )

    def test_preserves_complex_query(self):
        path = "/doh/cloudflare/dns-query?name=api.github.com&type=A&cd=false&do=0&ct=application/dns-json"
        expected = "/dns-query?name=api.github.com&type=A&cd=false&do=0&ct=application/dns-json"
        assert transform_path(path, "doh-cloudflare", DEFAULT_PLATFORMS) == expected

    def test_preserves_fragment(self):
        assert (
            transform_path("/doh/google/resolve#results", "doh-google", DEFAULT_PLATFORMS)
            == "/resolve#results"
        )

    def test_prefix_only_collapses_to_root(self):
        assert transform_path("/doh/cloudflare/", "doh-cloudflare", DEFAULT_PLATFORMS) == "/"

    def test_prefix_without_trailing_slash_is_untouched(self):
        assert transform_path("/doh/google", "doh-google", DEFAULT_PLATFORMS) == "/doh/google"

    @pytest.mark.parametrize(
        "path", ["/some/other/path", "/api/v1/data", "/health/check", ""]
    )
    def test_unrelated_paths_are_untouched(self, path):
        assert transform_path(path, "doh-cloudflare", DEFAULT_PLATFORMS) == path

    def test_strip_is_idempotent(self):
        once = strip_platform_prefix("/doh/cloudflare/dns-query", "doh-cloudflare")
        assert once == "/dns-query"
        assert strip_platform_prefix(once, "doh-cloudflare") == once

    def test_already_stripped_path(self):
        assert transform_path("/dns-query", "doh-cloudflare", DEFAULT_PLATFORMS) == "/dns-query"


class TestUnknownAndEmpty:
    def test_unknown_key_returns_path_unchanged(self):
        path = "/doh/nonexistent/dns-query"
        assert transform_path(path, "doh-nonexistent", DEFAULT_PLATFORMS) == path

    def test_unknown_key_skips_special_cases(self):
        assert transform_path("/serde", "crates", {}) == "/serde"

    def test_empty_input_never_gains_a_prefix(self, platforms):
        for key in platforms:
            assert transform_path("", key, platforms) == ""

    @pytest.mark.parametrize("path", ["null", "undefined"])
    def test_relative_strings_do_not_raise(self, path):
        assert transform_path(path, "doh-cloudflare", DEFAULT_PLATFORMS) == path


class TestCratesApi:
    def test_download(self, platforms):
        assert (
            transform_path("/serde/1.0.0/download", "crates", platforms)
            == "/api/v1/crates/serde/1.0.0/download"
        )

    def test_crate_info(self, platforms):
        assert transform_path("/serde", "crates", platforms) == "/api/v1/crates/serde"

    def test_search_with_query(self, platforms):
        assert transform_path("/?q=tokio", "crates", platforms) == "/api/v1/crates?q=tokio"

    def test_search_root(self, platforms):
        assert transform_path("/", "crates", platforms) == "/api/v1/crates"

    def test_double_prefixed_input(self, platforms):
        assert transform_path("/crates/?q=tokio", "crates", platforms) == "/api/v1/crates?q=tokio"
        assert (
            transform_path("/crates/serde/1.0.0/download", "crates", platforms)
            == "/api/v1/crates/serde/1.0.0/download"
        )

    def test_query_after_crate_path(self, platforms):
        assert (
            transform_path("/serde/versions?page=2#top", "crates", platforms)
            == "/api/v1/crates/serde/versions?page=2#top"
        )


class TestPluginUpdateCenter:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/update-center.json", "/current/update-center.json"),
            ("/update-center.actual.json", "/current/update-center.actual.json"),
        ],
    )
    def test_top_level_files_move_to_current(self, platforms, path, expected):
        assert transform_path(path, "jenkins", platforms) == expected

    @pytest.mark.parametrize(
        "path",
        [
            "/download/plugins/foo/1.0/foo.hpi",
            "/experimental/update-center.json",
            "/current/update-center.json",
            "/download/plugins/git/5.0/git.hpi?mirror=1",
        ],
    )
    def test_channel_paths_pass_through(self, platforms, path):
        assert transform_path(path, "jenkins", platforms) == path

    def test_other_paths_are_relative_to_current(self, platforms):
        assert (
            transform_path("/plugin-versions.json", "jenkins", platforms)
            == "/current/plugin-versions.json"
        )

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/plugin-versions.json?x=1#f", "/current/plugin-versions.json?x=1#f"),
            (
                "/update-center.json?id=default&version=2.440",
                "/current/update-center.json?id=default&version=2.440",
            ),
            ("/update-center.actual.json#top", "/current/update-center.actual.json#top"),
        ],
    )
    def test_query_and_fragment_are_preserved(self, platforms, path, expected):
        assert transform_path(path, "jenkins", platforms) == expected

    def test_channel_name_without_slash_is_not_a_channel(self, platforms):
        assert transform_path("/download", "jenkins", platforms) == "/current/download"

    def test_prefixed_input(self, platforms):
        assert (
            transform_path("/jenkins/update-center.json", "jenkins", platforms)
            == "/current/update-center.json"
        )


class TestPassthroughFamilies:
    @pytest.mark.parametrize(
        "key, path",
        [
            ("homebrew-api", "/formula/git.json"),
            ("homebrew-api", "/cask/docker.json?x=1"),
            ("homebrew-bottles", "/v2/homebrew/core/git/manifests/2.39.0"),
            ("homebrew", "/homebrew-core"),
            ("homebrew", "/brew#readme"),
            ("raw.githubusercontent.com", "/owner/repo/main/file"),
            ("release-assets.githubusercontent.com", "/asset/1?sig=abc%2B&se=2025"),
            ("npm", "/react/-/react-18.2.0.tgz"),
        ],
    )
    def test_passthrough(self, platforms, key, path):
        assert transform_path(path, key, platforms) == path


class TestPlatformFamily:
    @pytest.mark.parametrize(
        "key, family",
        [
            ("crates", PlatformFamily.CRATES_API),
            ("homebrew-api", PlatformFamily.PACKAGE_JSON_API),
            ("homebrew-bottles", PlatformFamily.BINARY_ARTIFACTS),
            ("jenkins", PlatformFamily.PLUGIN_UPDATE_CENTER),
            ("homebrew", PlatformFamily.SOURCE_REPOSITORY),
            ("raw.githubusercontent.com", PlatformFamily.HOSTNAME),
            ("doh-cloudflare", PlatformFamily.DEFAULT),
            ("npm", PlatformFamily.DEFAULT),
        ],
    )
    def test_family_of(self, key, family):
        assert PlatformFamily.of(key) is family
