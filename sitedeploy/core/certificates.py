"""Certificate acquisition dispatch."""

from typing import Awaitable, Callable

from sitedeploy.core.exceptions import UnsupportedCertificateTypeError
from sitedeploy.models.deployment import SslConfiguration
from sitedeploy.models.enums import CertificateType
from sitedeploy.models.results import CertificateResult
from sitedeploy.services.contracts import CertificateService

CertificateIssuer = Callable[[CertificateService, str, SslConfiguration], Awaitable[CertificateResult]]


def normalize_thumbprint(thumbprint: str) -> str:
    """Strip separators and upper-case a certificate thumbprint."""
    return thumbprint.replace(":", "").replace(" ", "").upper()


async def _self_signed(service: CertificateService, domain: str, ssl: SslConfiguration) -> CertificateResult:
    return await service.generate_self_signed(domain, ssl.validity_days)


async def _lets_encrypt(service: CertificateService, domain: str, ssl: SslConfiguration) -> CertificateResult:
    return await service.request_lets_encrypt(domain, ssl.lets_encrypt_email)


async def _custom(service: CertificateService, domain: str, ssl: SslConfiguration) -> CertificateResult:
    return await service.install_certificate(ssl.certificate_path, ssl.certificate_password)


async def _key_vault(service: CertificateService, domain: str, ssl: SslConfiguration) -> CertificateResult:
    return await service.get_from_key_vault(ssl.key_vault_url, ssl.certificate_name)


# Closed table; a type without an entry has no issuance path
CERTIFICATE_ISSUERS: dict[CertificateType, CertificateIssuer] = {
    CertificateType.SELF_SIGNED: _self_signed,
    CertificateType.LETS_ENCRYPT: _lets_encrypt,
    CertificateType.CUSTOM_CERTIFICATE: _custom,
    CertificateType.AZURE_KEY_VAULT: _key_vault,
}


async def acquire_certificate(
    service: CertificateService,
    domain_name: str,
    ssl: SslConfiguration,
) -> CertificateResult:
    """Obtain a certificate through exactly one service operation.

    Raises:
        UnsupportedCertificateTypeError: If the type has no issuance path.
            The service is not called.
    """
    issuer = CERTIFICATE_ISSUERS.get(ssl.certificate_type)
    if issuer is None:
        raise UnsupportedCertificateTypeError(ssl.certificate_type.value)

    result = await issuer(service, domain_name, ssl)
    if result.thumbprint:
        result = result.model_copy(update={"thumbprint": normalize_thumbprint(result.thumbprint)})
    return result
