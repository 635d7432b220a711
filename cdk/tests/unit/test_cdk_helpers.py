"""Tests for CDK helper utilities."""

import os
from unittest.mock import patch

from cdk.helpers import (
    REGION_ABBREVIATIONS,
    get_allowed_origins,
    get_region,
    get_region_abbrev,
    make_resource_namer,
)


class TestRegionAbbreviations:
    """Tests for REGION_ABBREVIATIONS constant."""

    def test_us_east_1(self):
        assert REGION_ABBREVIATIONS["us-east-1"] == "ue1"

    def test_eu_west_1(self):
        assert REGION_ABBREVIATIONS["eu-west-1"] == "ew1"


class TestGetRegion:
    """Tests for get_region function."""

    def test_returns_aws_region_env_var(self):
        """Returns AWS_REGION environment variable when set."""
        with patch.dict(os.environ, {"AWS_REGION": "us-west-2"}, clear=True):
            assert get_region() == "us-west-2"

    def test_returns_cdk_default_region_if_aws_region_not_set(self):
        """Returns CDK_DEFAULT_REGION when AWS_REGION is not set."""
        with patch.dict(os.environ, {"CDK_DEFAULT_REGION": "eu-west-1"}, clear=True):
            assert get_region() == "eu-west-1"

    def test_returns_us_east_1_as_default(self):
        """Returns us-east-1 when no region environment variables are set."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_region() == "us-east-1"


class TestGetRegionAbbrev:
    """Tests for get_region_abbrev function."""

    def test_known_region(self):
        assert get_region_abbrev("us-east-1") == "ue1"

    def test_unknown_region_uses_first_three_chars(self):
        """Returns first 3 chars for unknown region."""
        assert get_region_abbrev("unknown-region") == "unk"

    def test_reads_from_env_when_none(self):
        """Reads from environment when region is None."""
        with patch.dict(os.environ, {"AWS_REGION": "us-west-2"}, clear=True):
            assert get_region_abbrev() == "uw2"


class TestMakeResourceNamer:
    """Tests for make_resource_namer factory."""

    def test_creates_naming_function(self):
        """Factory creates a function that generates resource names."""
        rn = make_resource_namer("ue1", "dev")
        assert rn("hr-users") == "hr-users-ue1-dev"

    def test_naming_function_with_different_env(self):
        rn = make_resource_namer("ew1", "prod")
        assert rn("hr-users") == "hr-users-ew1-prod"

    def test_naming_function_allows_override(self):
        """Naming function allows overriding default region and env."""
        rn = make_resource_namer("ue1", "dev")
        assert rn("hr-users", "uw2", "prod") == "hr-users-uw2-prod"


class TestGetAllowedOrigins:
    """Tests for get_allowed_origins function."""

    def test_prod_uses_portal_only(self):
        with patch.dict(os.environ, {}, clear=True):
            assert get_allowed_origins("prod") == ["https://app.a1strategy.net"]

    def test_non_prod_includes_localhost(self):
        """Non-prod environments allow the local dev server and the env portal."""
        with patch.dict(os.environ, {}, clear=True):
            origins = get_allowed_origins("dev")

        assert origins == ["http://localhost:3000", "https://dev.app.a1strategy.net"]

    def test_env_var_overrides_defaults(self):
        with patch.dict(os.environ, {"ALLOWED_ORIGINS": "https://a.example.com, https://b.example.com,"}, clear=True):
            origins = get_allowed_origins("prod")

        assert origins == ["https://a.example.com", "https://b.example.com"]
