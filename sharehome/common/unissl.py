import os
import ssl
import uuid
import datetime
import ipaddress
import tempfile

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from sharehome import logger


def generate_selfsigned_cert(hostname:str = 'localhost', key_exp:int = 65537, key_size:int = 2048):
	"""Returns a PEM encoded (certificate, private key) pair, self-signed for hostname"""
	try:
		logger.debug('Generating self-signed certificate for %s' % hostname)
		one_day = datetime.timedelta(1, 0, 0)
		one_year = datetime.timedelta(365, 0, 0)
		now = datetime.datetime.now(datetime.timezone.utc)
		private_key = rsa.generate_private_key(
			public_exponent=key_exp,
			key_size=key_size,
			backend=default_backend()
		)
		try:
			alt_name = x509.IPAddress(ipaddress.ip_address(hostname))
		except ValueError:
			alt_name = x509.DNSName(hostname)

		name = x509.Name([
			x509.NameAttribute(NameOID.COMMON_NAME, hostname),
			x509.NameAttribute(NameOID.ORGANIZATION_NAME, 'sharehome'),
		])
		builder = x509.CertificateBuilder()
		builder = builder.subject_name(name)
		builder = builder.issuer_name(name)
		builder = builder.not_valid_before(now - one_day)
		builder = builder.not_valid_after(now + one_year)
		builder = builder.serial_number(int(uuid.uuid4()))
		builder = builder.public_key(private_key.public_key())
		builder = builder.add_extension(
			x509.SubjectAlternativeName([alt_name]), critical=False,
		)
		certificate = builder.sign(
			private_key=private_key, algorithm=hashes.SHA256(),
			backend=default_backend()
		)

		cert_pem = certificate.public_bytes(
			encoding=serialization.Encoding.PEM,
		)
		key_pem = private_key.private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.TraditionalOpenSSL,
			encryption_algorithm=serialization.NoEncryption()
		)
		return cert_pem, key_pem, None
	except Exception as e:
		logger.exception('generate_selfsigned_cert')
		return None, None, e


class UniSSL:
	"""Server side TLS settings. Certificate and key may be file paths or PEM bytes."""
	def __init__(self, certfile = None, keyfile = None, password:str = None):
		self.certfile = certfile
		self.keyfile = keyfile
		self.password:str = password
		self.__tempfiles = []

	@staticmethod
	def get_selfsigned_context(hostname:str = 'localhost'):
		cert_pem, key_pem, err = generate_selfsigned_cert(hostname)
		if err is not None:
			raise err
		return UniSSL(cert_pem, key_pem)

	def __to_file(self, data):
		if isinstance(data, str):
			return data
		fd, filename = tempfile.mkstemp(suffix='.pem')
		with os.fdopen(fd, 'wb') as f:
			f.write(data)
		self.__tempfiles.append(filename)
		return filename

	def get_ssl_context(self, protocol = ssl.PROTOCOL_TLS_SERVER):
		if self.certfile is None:
			raise Exception('Server side TLS needs a certificate!')
		try:
			certfilename = self.__to_file(self.certfile)
			keyfilename = None
			if self.keyfile is not None:
				keyfilename = self.__to_file(self.keyfile)
			ssl_ctx = ssl.SSLContext(protocol)
			ssl_ctx.load_cert_chain(certfile=certfilename, keyfile=keyfilename, password=self.password)
			return ssl_ctx
		finally:
			self.__cleanup()

	def __cleanup(self):
		for filename in self.__tempfiles:
			try:
				os.remove(filename)
			except OSError:
				logger.debug('Could not remove temporary file %s' % filename)
		self.__tempfiles = []

	def __str__(self):
		certfile = self.certfile if isinstance(self.certfile, str) else '<pem>'
		keyfile = self.keyfile if isinstance(self.keyfile, str) or self.keyfile is None else '<pem>'
		return 'UniSSL(certfile=%s, keyfile=%s)' % (certfile, keyfile)
