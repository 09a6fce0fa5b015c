import base64

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from mpesa_b2c.errors.exceptions import CertificateError, SigningError

# Common name carried by the stand-in certificates shipped in mpesa_b2c/certs
PLACEHOLDER_CN_PREFIX = 'PLACEHOLDER'


def _check_not_placeholder(certificate: x509.Certificate, cert_path: str) -> None:
    for attribute in certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        if str(attribute.value).startswith(PLACEHOLDER_CN_PREFIX):
            raise CertificateError(
                f"Certificate '{cert_path}' is a placeholder; install the Daraja "
                f"certificate for this environment or set MPESA_CERT_PATH"
            )


def load_public_key(cert_path: str) -> rsa.RSAPublicKey:
    """
    Load the RSA public key from a gateway certificate file.

    Accepts an X.509 certificate (PEM or DER) or a bare PEM public key.

    Raises:
        CertificateError: the file cannot be read or is a placeholder certificate
        SigningError: the file does not hold an RSA public key
    """
    try:
        with open(cert_path, 'rb') as fh:
            data = fh.read()
    except OSError as exc:
        raise CertificateError(f"Cannot read certificate '{cert_path}': {exc}") from exc

    certificate = None
    try:
        if b'-----BEGIN CERTIFICATE-----' in data:
            certificate = x509.load_pem_x509_certificate(data)
        elif b'-----BEGIN PUBLIC KEY-----' in data:
            public_key = serialization.load_pem_public_key(data)
        else:
            certificate = x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise SigningError(f"Malformed certificate '{cert_path}': {exc}") from exc

    if certificate is not None:
        _check_not_placeholder(certificate, cert_path)
        public_key = certificate.public_key()

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise SigningError(f"Certificate '{cert_path}' does not hold an RSA key")

    return public_key


def encrypt_pkcs1v15(public_key: rsa.RSAPublicKey, plaintext: str) -> str:
    """
    RSA-encrypt plaintext with PKCS#1 v1.5 padding and base64 the ciphertext.

    Padding is randomised, so two calls with the same input differ.
    """
    try:
        ciphertext = public_key.encrypt(plaintext.encode(), padding.PKCS1v15())
    except ValueError as exc:
        raise SigningError(f"Encryption failed: {exc}") from exc

    return base64.b64encode(ciphertext).decode()
