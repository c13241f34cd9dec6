import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509.oid import NameOID

from clabkit.cert import (
    CaRootInput,
    CertInput,
    Certificates,
    create_root_ca,
    generate_cert,
    generate_root_ca,
    retrieve_node_cert_data,
    write_cert_files,
)


@pytest.fixture(scope="module")
def ca(tmp_path_factory):
    ca_dir = tmp_path_factory.mktemp("ca")
    certs = generate_root_ca(ca_dir, CaRootInput())
    return ca_dir, certs


def _cn(cert):
    return cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value


def test_root_ca_files_match_returned(ca):
    ca_dir, certs = ca
    assert (ca_dir / "ca.pem").read_bytes() == certs.cert
    assert (ca_dir / "ca-key.pem").read_bytes() == certs.key
    assert (ca_dir / "ca.csr").read_bytes() == certs.csr


def test_root_ca_is_self_signed_ca(ca):
    _, certs = ca
    cert = x509.load_pem_x509_certificate(certs.cert)
    assert cert.issuer == cert.subject
    assert _cn(cert) == "containerlab.srlinux.dev"
    bc = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    assert bc.ca is True


def test_root_ca_keeps_long_country(ca):
    _, certs = ca
    cert = x509.load_pem_x509_certificate(certs.cert)
    country = cert.subject.get_attributes_for_oid(NameOID.COUNTRY_NAME)[0].value
    assert country == "Internet"


def test_root_ca_expiry(tmp_path):
    certs = generate_root_ca(tmp_path, CaRootInput(expiry="48h", name_prefix="short"))
    cert = x509.load_pem_x509_certificate(certs.cert)
    assert cert.not_valid_after - cert.not_valid_before == datetime.timedelta(hours=48)
    assert (tmp_path / "short.pem").exists()


def test_root_ca_bad_expiry(tmp_path):
    with pytest.raises(ValueError):
        generate_root_ca(tmp_path, CaRootInput(expiry="forever"))


def test_generate_cert_signed_by_ca(ca, tmp_path):
    ca_dir, ca_certs = ca
    data = CertInput(hosts=["node1", "10.0.0.1"], common_name="node1.lab.io", name="node1")
    certs = generate_cert(ca_dir / "ca.pem", ca_dir / "ca-key.pem", data, tmp_path / "out")
    cert = x509.load_pem_x509_certificate(certs.cert)
    ca_cert = x509.load_pem_x509_certificate(ca_certs.cert)
    assert cert.issuer == ca_cert.subject
    ca_cert.public_key().verify(
        cert.signature,
        cert.tbs_certificate_bytes,
        padding.PKCS1v15(),
        cert.signature_hash_algorithm,
    )
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["node1"]
    assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["10.0.0.1"]
    assert (tmp_path / "out" / "node1.pem").read_bytes() == certs.cert


def test_generate_cert_without_hosts(ca, tmp_path):
    ca_dir, _ = ca
    certs = generate_cert(ca_dir / "ca.pem", ca_dir / "ca-key.pem", CertInput(), tmp_path)
    cert = x509.load_pem_x509_certificate(certs.cert)
    with pytest.raises(x509.ExtensionNotFound):
        cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    assert (tmp_path / "cert-key.pem").exists()


def test_generate_cert_missing_ca(tmp_path):
    with pytest.raises(FileNotFoundError):
        generate_cert(tmp_path / "nope.pem", tmp_path / "nope-key.pem", CertInput(), tmp_path)


def test_node_cert_input():
    data = CertInput.for_node("n1", "clab-lab-n1", "n1.lab.io", "lab")
    assert data.common_name == "n1.lab.io"
    assert data.hosts == ["n1", "clab-lab-n1", "n1.lab.io"]


def test_lab_root_input():
    data = CaRootInput.for_lab("lab")
    assert data.common_name == "lab Root CA"
    assert data.name_prefix == "root-ca"
    assert data.expiry == "262800h"


def test_write_and_retrieve_roundtrip(tmp_path):
    node_dir = tmp_path / "n1"
    node_dir.mkdir()
    certs = Certificates(key=b"KEY", csr=b"CSR", cert=b"CERT")
    write_cert_files(certs, node_dir / "n1")
    assert (node_dir / "n1.csr").read_bytes() == b"CSR"
    got = retrieve_node_cert_data("n1", tmp_path)
    assert got.cert == b"CERT"
    assert got.key == b"KEY"


def test_retrieve_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        retrieve_node_cert_data("absent", tmp_path)


def test_retrieve_missing_key(tmp_path):
    (tmp_path / "n2").mkdir()
    (tmp_path / "n2" / "n2.pem").write_bytes(b"CERT")
    with pytest.raises(FileNotFoundError):
        retrieve_node_cert_data("n2", tmp_path)


def test_create_root_ca_not_needed(tmp_path):
    assert create_root_ca("lab", tmp_path / "root", ["linux", "ceos"]) is None
    assert not (tmp_path / "root").exists()


def test_create_root_ca_once(tmp_path):
    root = tmp_path / "root"
    certs = create_root_ca("lab", root, ["srl", "linux"])
    cert = x509.load_pem_x509_certificate(certs.cert)
    assert _cn(cert) == "lab Root CA"
    assert (root / "root-ca.pem").read_bytes() == certs.cert
    assert create_root_ca("lab", root, ["srl"]) is None