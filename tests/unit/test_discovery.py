"""Unit tests for marker-file application discovery."""

from pathlib import Path

import pytest

from sitedeploy.models.enums import ApplicationType
from sitedeploy.services.discovery import MarkerFileDiscoveryService


@pytest.fixture
def service() -> MarkerFileDiscoveryService:
    return MarkerFileDiscoveryService()


@pytest.mark.asyncio
async def test_static_site(service, app_dir: Path):
    discovery = await service.discover(str(app_dir))

    assert discovery.detected_type == ApplicationType.STATIC_WEBSITE
    assert discovery.config_files == ["appsettings.json"]
    assert discovery.warnings == []


@pytest.mark.asyncio
async def test_aspnet_core_mvc(service, tmp_path: Path):
    (tmp_path / "Views").mkdir()
    (tmp_path / "Shop.csproj").write_text(
        '<Project Sdk="Microsoft.NET.Sdk.Web"><PropertyGroup>'
        "<TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>"
    )

    discovery = await service.discover(str(tmp_path))

    assert discovery.detected_type == ApplicationType.ASPNET_CORE_MVC
    assert discovery.framework_version == "net8.0"


@pytest.mark.asyncio
async def test_web_forms(service, tmp_path: Path):
    (tmp_path / "bin").mkdir()
    (tmp_path / "web.config").write_text("<configuration />")
    (tmp_path / "Default.aspx").write_text("<%@ Page %>")

    discovery = await service.discover(str(tmp_path))

    assert discovery.detected_type == ApplicationType.ASPNET_FRAMEWORK_WEB_FORMS
    assert discovery.config_files == ["web.config"]


@pytest.mark.asyncio
async def test_node_recommends_web_config(service, tmp_path: Path):
    (tmp_path / "package.json").write_text("{}")

    discovery = await service.discover(str(tmp_path))

    assert discovery.detected_type == ApplicationType.NODEJS
    assert discovery.recommendations


@pytest.mark.asyncio
async def test_unknown(service, tmp_path: Path):
    discovery = await service.discover(str(tmp_path))

    assert discovery.detected_type == ApplicationType.UNKNOWN
    assert discovery.warnings


@pytest.mark.asyncio
async def test_missing_path(service, tmp_path: Path):
    discovery = await service.discover(str(tmp_path / "missing"))

    assert discovery.detected_type == ApplicationType.UNKNOWN
    assert "does not exist" in discovery.warnings[0]
