"""Lab certificate authority: root CA creation and node certificate signing."""

from __future__ import annotations

import datetime
import ipaddress
import logging
import os
import re
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

log = logging.getLogger(__name__)

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
DEFAULT_SIGNING_EXPIRY = "8760h"
LAB_ROOT_CA_EXPIRY = "262800h"
ROOT_CA_NAME_PREFIX = "root-ca"
CA_REQUIRING_KINDS = frozenset({"srl"})

DEFAULT_COMMON_NAME = "containerlab.srlinux.dev"
DEFAULT_COUNTRY = "Internet"
DEFAULT_LOCALITY = "Server"
DEFAULT_ORGANIZATION = "Containerlab"
DEFAULT_ORGANIZATION_UNIT = "Containerlab Tools"
DEFAULT_CA_EXPIRY = "87600h"
DEFAULT_CA_NAME_PREFIX = "ca"
DEFAULT_CERT_NAME_PREFIX = "cert"

CSR_NO_HOST_MESSAGE = (
    'This certificate lacks a "hosts" field. '
    "This makes it unsuitable for websites."
)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|h|m|s)")
_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


@dataclass
class Certificates:
    """PEM encoded private key, signing request and certificate."""

    key: bytes = b""
    csr: bytes = b""
    cert: bytes = b""


@dataclass
class CertInput:
    """Attributes of a certificate to create and sign."""

    hosts: list[str] = field(default_factory=list)
    common_name: str = DEFAULT_COMMON_NAME
    country: str = DEFAULT_COUNTRY
    locality: str = DEFAULT_LOCALITY
    organization: str = DEFAULT_ORGANIZATION
    organization_unit: str = DEFAULT_ORGANIZATION_UNIT
    expiry: str = DEFAULT_CA_EXPIRY
    name: str = DEFAULT_CERT_NAME_PREFIX
    long_name: str = ""
    fqdn: str = ""
    prefix: str = ""

    @classmethod
    def for_node(cls, name: str, long_name: str, fqdn: str, prefix: str) -> "CertInput":
        """Certificate attributes used for a lab node."""
        return cls(
            hosts=[name, long_name, fqdn],
            common_name=f"{name}.{prefix}.io",
            country="BE",
            locality="Antwerp",
            organization="Nokia",
            organization_unit="Container lab",
            name=name,
            long_name=long_name,
            fqdn=fqdn,
            prefix=prefix,
        )


@dataclass
class CaRootInput:
    """Attributes of a root CA; ``name_prefix`` names the written files."""

    common_name: str = DEFAULT_COMMON_NAME
    country: str = DEFAULT_COUNTRY
    locality: str = DEFAULT_LOCALITY
    organization: str = DEFAULT_ORGANIZATION
    organization_unit: str = DEFAULT_ORGANIZATION_UNIT
    expiry: str = DEFAULT_CA_EXPIRY
    prefix: str = ""
    name_prefix: str = DEFAULT_CA_NAME_PREFIX

    @classmethod
    def for_lab(cls, lab_name: str) -> "CaRootInput":
        """Root CA attributes used for a lab."""
        return cls(
            common_name=f"{lab_name} Root CA",
            country="BE",
            locality="Antwerp",
            organization="Nokia",
            organization_unit="Container lab",
            expiry=LAB_ROOT_CA_EXPIRY,
            prefix=lab_name,
            name_prefix=ROOT_CA_NAME_PREFIX,
        )


def _parse_duration(text: str) -> datetime.timedelta:
    if not text:
        raise ValueError("invalid duration ''")
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {text!r}")
    return datetime.timedelta(seconds=total)


def _name(cn: str, country: str, locality: str, org: str, org_unit: str) -> x509.Name:
    attrs = []
    if country:
        attrs.append(
            x509.NameAttribute(NameOID.COUNTRY_NAME, country, _validate=len(country) == 2)
        )
    if locality:
        attrs.append(x509.NameAttribute(NameOID.LOCALITY_NAME, locality))
    if org:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    if org_unit:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, org_unit))
    if cn:
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, cn))
    return x509.Name(attrs)


def _alt_names(hosts: Iterable[str]) -> list[x509.GeneralName]:
    names: list[x509.GeneralName] = []
    for host in hosts:
        if not host:
            continue
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(host)))
            continue
        except ValueError:
            pass
        if "@" in host:
            names.append(x509.RFC822Name(host))
        else:
            names.append(x509.DNSName(host))
    return names


def _new_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=KEY_SIZE)


def _key_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


def _build_csr(
    key: rsa.RSAPrivateKey, subject: x509.Name, alt_names: list, ca: bool
) -> x509.CertificateSigningRequest:
    builder = x509.CertificateSigningRequestBuilder().subject_name(subject)
    if alt_names:
        builder = builder.add_extension(x509.SubjectAlternativeName(alt_names), critical=False)
    if ca:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=None), critical=True
        )
    return builder.sign(key, hashes.SHA256())


def _validity(expiry: str) -> tuple[datetime.datetime, datetime.datetime]:
    now = datetime.datetime.now(datetime.timezone.utc).replace(second=0, microsecond=0)
    not_before = now - datetime.timedelta(minutes=5)
    return not_before, not_before + _parse_duration(expiry)


def _key_usage(*, signing: bool, encipherment: bool, cert_sign: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=signing,
        content_commitment=False,
        key_encipherment=encipherment,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=cert_sign,
        crl_sign=cert_sign,
        encipher_only=False,
        decipher_only=False,
    )


def write_cert_files(certs: Certificates, prefix: str | os.PathLike) -> None:
    """Write ``<prefix>.pem``, ``<prefix>-key.pem`` and ``<prefix>.csr``."""
    base = os.fspath(prefix)
    Path(base + ".pem").write_bytes(certs.cert)
    Path(base + "-key.pem").write_bytes(certs.key)
    Path(base + ".csr").write_bytes(certs.csr)


def generate_root_ca(ca_root_dir: str | os.PathLike, data: CaRootInput) -> Certificates:
    """Create a self-signed root CA and write its files into ``ca_root_dir``."""
    log.info("Creating root CA")
    os.makedirs(ca_root_dir, mode=0o755, exist_ok=True)
    not_before, not_after = _validity(data.expiry)

    key = _new_key()
    subject = _name(
        data.common_name,
        data.country,
        data.locality,
        data.organization,
        data.organization_unit,
    )
    csr = _build_csr(key, subject, [], ca=True)
    ski = x509.SubjectKeyIdentifier.from_public_key(key.public_key())
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(secrets.randbits(159) + 1)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            _key_usage(signing=False, encipherment=False, cert_sign=True), critical=True
        )
        .add_extension(ski, critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    certs = Certificates(
        key=_key_pem(key),
        csr=csr.public_bytes(serialization.Encoding.PEM),
        cert=cert.public_bytes(serialization.Encoding.PEM),
    )
    write_cert_files(certs, os.path.join(ca_root_dir, data.name_prefix))
    return certs


def generate_cert(
    ca_cert_path: str | os.PathLike,
    ca_key_path: str | os.PathLike,
    data: CertInput,
    target_path: str | os.PathLike,
) -> Certificates:
    """Create a key and certificate signed by the given CA; write them to ``target_path``."""
    os.makedirs(target_path, mode=0o755, exist_ok=True)

    key = _new_key()
    subject = _name(
        data.common_name,
        data.country,
        data.locality,
        data.organization,
        data.organization_unit,
    )
    alt_names = _alt_names(data.hosts)
    csr = _build_csr(key, subject, alt_names, ca=False)

    ca_cert = x509.load_pem_x509_certificate(Path(ca_cert_path).read_bytes())
    ca_key = serialization.load_pem_private_key(Path(ca_key_path).read_bytes(), password=None)

    not_before, not_after = _validity(DEFAULT_SIGNING_EXPIRY)
    builder = (
        x509.CertificateBuilder()
        .subject_name(csr.subject)
        .issuer_name(ca_cert.subject)
        .public_key(csr.public_key())
        .serial_number(secrets.randbits(159) + 1)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            _key_usage(signing=True, encipherment=True, cert_sign=False), critical=True
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
            ),
            critical=False,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(csr.public_key()), critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key()),
            critical=False,
        )
    )
    if alt_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(alt_names), critical=False
        )
    else:
        log.warning(CSR_NO_HOST_MESSAGE)
    cert = builder.sign(ca_key, hashes.SHA256())

    certs = Certificates(
        key=_key_pem(key),
        csr=csr.public_bytes(serialization.Encoding.PEM),
        cert=cert.public_bytes(serialization.Encoding.PEM),
    )
    write_cert_files(certs, os.path.join(target_path, data.name))
    return certs


def retrieve_node_cert_data(short_name: str, lab_ca_dir: str | os.PathLike) -> Certificates:
    """Read a node's certificate and key from ``<lab_ca_dir>/<node>/``."""
    node_dir = Path(lab_ca_dir) / short_name
    if not node_dir.exists():
        raise FileNotFoundError(f"no certificate directory for node {short_name}: {node_dir}")
    if not node_dir.is_dir():
        raise NotADirectoryError(f"{node_dir} is not a directory")
    return Certificates(
        cert=(node_dir / f"{short_name}.pem").read_bytes(),
        key=(node_dir / f"{short_name}-key.pem").read_bytes(),
    )


def create_root_ca(
    config_name: str, lab_ca_root: str | os.PathLike, kinds: Iterable[str]
) -> Optional[Certificates]:
    """Create the lab root CA when a node kind needs it and it does not exist yet."""
    if not CA_REQUIRING_KINDS.intersection(kinds):
        return None
    root = Path(lab_ca_root)
    if (root / f"{ROOT_CA_NAME_PREFIX}.pem").exists() and (
        root / f"{ROOT_CA_NAME_PREFIX}-key.pem"
    ).exists():
        return None
    try:
        certs = generate_root_ca(root, CaRootInput.for_lab(config_name))
    except (ValueError, OSError) as exc:
        raise RuntimeError(f"failed to generate rootCa: {exc}") from exc
    log.debug("root CSR: %s", certs.csr.decode())
    log.debug("root Cert: %s", certs.cert.decode())
    return certs