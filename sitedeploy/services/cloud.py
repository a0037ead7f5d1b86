"""Cloud environment detection through instance metadata endpoints."""

import httpx

from sitedeploy.config import settings
from sitedeploy.models.enums import CloudProvider
from sitedeploy.models.results import CloudEnvironmentInfo
from sitedeploy.utils.logging import get_logger

METADATA_HOST = "http://169.254.169.254"
AZURE_INSTANCE_URL = f"{METADATA_HOST}/metadata/instance?api-version=2021-02-01"
AWS_TOKEN_URL = f"{METADATA_HOST}/latest/api/token"
AWS_METADATA_URL = f"{METADATA_HOST}/latest/meta-data"
GCP_INSTANCE_URL = "http://metadata.google.internal/computeMetadata/v1/instance/?recursive=true"


class MetadataCloudService:
    """Asks each provider's metadata service in turn; first answer wins."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds or settings.cloud_metadata_timeout_seconds
        self.transport = transport
        self.logger = get_logger("cloud")

    async def detect_environment(self) -> CloudEnvironmentInfo:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self.transport
        ) as client:
            for probe in (self._probe_azure, self._probe_aws, self._probe_gcp):
                try:
                    info = await probe(client)
                except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
                    self.logger.debug("cloud.probe_failed", probe=probe.__name__, error=str(e))
                    continue
                if info is not None:
                    self.logger.info(
                        "cloud.detected",
                        provider=info.provider.value,
                        public_ip=info.public_ip,
                    )
                    return info

        return CloudEnvironmentInfo(provider=CloudProvider.NONE, is_cloud=False)

    async def _probe_azure(self, client: httpx.AsyncClient) -> CloudEnvironmentInfo | None:
        response = await client.get(AZURE_INSTANCE_URL, headers={"Metadata": "true"})
        if response.status_code != 200:
            return None
        body = response.json()
        compute = body["compute"]
        address = body["network"]["interface"][0]["ipv4"]["ipAddress"][0]
        return CloudEnvironmentInfo(
            provider=CloudProvider.AZURE,
            is_cloud=True,
            vm_name=compute.get("name"),
            region=compute.get("location"),
            instance_id=compute.get("vmId"),
            public_ip=address.get("publicIpAddress") or None,
            private_ip=address.get("privateIpAddress") or None,
        )

    async def _probe_aws(self, client: httpx.AsyncClient) -> CloudEnvironmentInfo | None:
        token_response = await client.put(
            AWS_TOKEN_URL, headers={"X-aws-ec2-metadata-token-ttl-seconds": "60"}
        )
        if token_response.status_code != 200:
            return None
        headers = {"X-aws-ec2-metadata-token": token_response.text}

        async def fetch(path: str) -> str | None:
            response = await client.get(f"{AWS_METADATA_URL}/{path}", headers=headers)
            return response.text if response.status_code == 200 else None

        return CloudEnvironmentInfo(
            provider=CloudProvider.AWS,
            is_cloud=True,
            instance_id=await fetch("instance-id"),
            region=await fetch("placement/region"),
            public_ip=await fetch("public-ipv4"),
            private_ip=await fetch("local-ipv4"),
        )

    async def _probe_gcp(self, client: httpx.AsyncClient) -> CloudEnvironmentInfo | None:
        response = await client.get(GCP_INSTANCE_URL, headers={"Metadata-Flavor": "Google"})
        if response.status_code != 200:
            return None
        body = response.json()
        interface = body["networkInterfaces"][0]
        access = interface.get("accessConfigs") or [{}]
        return CloudEnvironmentInfo(
            provider=CloudProvider.GOOGLE_CLOUD,
            is_cloud=True,
            vm_name=body.get("name"),
            region=body.get("zone", "").rsplit("/", 1)[-1] or None,
            instance_id=str(body.get("id")) if body.get("id") else None,
            public_ip=access[0].get("externalIp"),
            private_ip=interface.get("ip"),
        )
