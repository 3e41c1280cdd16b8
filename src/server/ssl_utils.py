"""Create a self-signed SSL certificate and key for the server."""

import datetime
import ipaddress
import sys
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

CERT_VALIDITY_DAYS = 365


def _remove_partial_files(*paths: Path) -> None:
    for path in paths:
        if path.exists():
            path.unlink()


def generate_certificate_and_key(
    gen_path: Path,
    cert_name: str = "cert.pem",
    key_name: str = "key.pem",
) -> None:
    """Generate a self-signed SSL certificate and RSA key.

    Args:
        gen_path (Path): The directory where the certificate and key
            files will be created.
        cert_name (str, optional): The name of the certificate file.
            Defaults to "cert.pem".
        key_name (str, optional): The name of the key file.
            Defaults to "key.pem".

    """
    cert_path = gen_path / cert_name
    key_path = gen_path / key_name

    if cert_path.exists() and key_path.exists():
        print(
            f"[SSL_UTILS] SSL cert and key already exist: "
            f"{cert_path}, {key_path}",
        )
        return

    print(
        f"[SSL_UTILS] Generating self-signed SSL certificate and key in "
        f"{gen_path}...",
    )
    try:
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        name = x509.Name(
            [
                x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
                x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, "State"),
                x509.NameAttribute(NameOID.LOCALITY_NAME, "City"),
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Org"),
                x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "Unit"),
                x509.NameAttribute(NameOID.COMMON_NAME, "localhost"),
            ],
        )
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=CERT_VALIDITY_DAYS))
            .add_extension(
                x509.SubjectAlternativeName(
                    [
                        x509.DNSName("localhost"),
                        x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                    ],
                ),
                critical=False,
            )
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            # Strict verification requires both key identifiers
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(
                    key.public_key(),
                ),
                critical=False,
            )
            .sign(key, hashes.SHA256())
        )

        key_path.write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=serialization.NoEncryption(),
            ),
        )
        cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        print(f"[SSL_UTILS] Successfully generated {cert_path} and {key_path}")

    except OSError as e:
        print(
            f"[SSL_UTILS ERROR] Could not write SSL files: {e}",
            file=sys.stderr,
        )
        _remove_partial_files(cert_path, key_path)

    except Exception as e:
        print(
            "[SSL_UTILS ERROR] An unexpected error "
            f"occurred during SSL generation: {e}",
            file=sys.stderr,
        )
        _remove_partial_files(cert_path, key_path)
