"""Application type detection from marker files."""

import re
from pathlib import Path

from sitedeploy.models.enums import ApplicationType, DeploymentTarget
from sitedeploy.models.results import ApplicationDiscovery

_TARGET_FRAMEWORK = re.compile(r"<TargetFramework>([^<]+)</TargetFramework>")


class MarkerFileDiscoveryService:
    """Classifies an application folder by the files at its root."""

    async def discover(self, path: str) -> ApplicationDiscovery:
        root = Path(path)
        if not root.is_dir():
            return ApplicationDiscovery(
                path=path,
                warnings=[f"Application path does not exist: {path}"],
            )

        config_files = sorted(
            p.name for p in root.iterdir()
            if p.is_file() and (p.suffix == ".config" or re.match(r"appsettings.*\.json$", p.name))
        )
        detected, framework = self._detect(root)

        warnings: list[str] = []
        recommendations: list[str] = []
        if detected == ApplicationType.UNKNOWN:
            warnings.append("Could not determine the application type")
        if (root / "package.json").exists() and not (root / "web.config").exists():
            recommendations.append("Add a web.config with an iisnode or reverse-proxy handler")

        return ApplicationDiscovery(
            path=path,
            detected_type=detected,
            framework_version=framework,
            config_files=config_files,
            recommended_target=DeploymentTarget.LOCAL_IIS,
            warnings=warnings,
            recommendations=recommendations,
        )

    def _detect(self, root: Path) -> tuple[ApplicationType, str]:
        project = next(iter(sorted(root.glob("*.csproj"))), None)
        if project is not None:
            text = project.read_text(encoding="utf-8", errors="ignore")
            match = _TARGET_FRAMEWORK.search(text)
            framework = match.group(1) if match else ""
            if "Microsoft.NET.Sdk.BlazorWebAssembly" in text:
                return ApplicationType.ASPNET_CORE_BLAZOR_WASM, framework
            if "Microsoft.NET.Sdk.Web" in text:
                if (root / "Views").is_dir():
                    return ApplicationType.ASPNET_CORE_MVC, framework
                if (root / "Pages").is_dir():
                    return ApplicationType.ASPNET_CORE_RAZOR, framework
                return ApplicationType.ASPNET_CORE_WEB_API, framework

        if any(root.glob("*.deps.json")):
            return ApplicationType.ASPNET_CORE_WEB_API, ""
        if (root / "web.config").exists() and (root / "bin").is_dir():
            if any(root.glob("*.aspx")):
                return ApplicationType.ASPNET_FRAMEWORK_WEB_FORMS, ""
            return ApplicationType.ASPNET_FRAMEWORK_MVC, ""
        if (root / "package.json").exists():
            return ApplicationType.NODEJS, ""
        if (root / "index.html").exists():
            return ApplicationType.STATIC_WEBSITE, ""
        return ApplicationType.UNKNOWN, ""
