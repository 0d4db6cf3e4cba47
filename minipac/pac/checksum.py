
# PAC signatures come in exactly two families:
#   - strong: RFC3961 keyed checksum (HMAC-SHA1-96-AES128/256) with key usage 17
#   - legacy: the Microsoft HMAC-MD5 "signaturekey" mac, also salted with usage 17
# The signature type decides the family, anything that is not a known strong
# type is treated as legacy.

from minipac import logger
from minipac.protocol.constants import KEY_USAGE, PAC_STRONG_CHECKSUM_TYPES
from minipac.protocol.encryption import Key, Cksumtype, make_checksum, checksum_len, _mac_equal
from minipac.protocol.errors import ChecksumUnavailableError, SignatureInvalidError


class PacChecksum:
	"""Keyed checksum used to compute and check one PAC signature"""
	cksumtype = None

	def __init__(self, signature_type:int):
		self.signature_type = signature_type

	def checksum(self, key:Key, data:bytes) -> bytes:
		if not isinstance(key, Key):
			raise ChecksumUnavailableError('Expected a Key object, got %s' % type(key).__name__)
		try:
			return make_checksum(self.cksumtype, key, KEY_USAGE.APP_DATA_CKSUM.value, data)
		except ValueError as e:
			raise ChecksumUnavailableError(str(e)) from e

	def checksum_len(self) -> int:
		return checksum_len(self.cksumtype)

	def verify(self, key:Key, data:bytes, expected:bytes):
		"""Raises SignatureInvalidError if the checksum of data is not expected"""
		computed = self.checksum(key, data)
		if not _mac_equal(computed, expected):
			raise SignatureInvalidError('Checksum type %d mismatch' % self.signature_type)

	def __repr__(self):
		return '%s(%d)' % (self.__class__.__name__, self.signature_type)


class StrongPacChecksum(PacChecksum):
	def __init__(self, signature_type:int):
		super().__init__(signature_type)
		# signature type and RFC3961 checksum type share the same numbering
		self.cksumtype = signature_type


class LegacyPacChecksum(PacChecksum):
	cksumtype = Cksumtype.HMAC_MD5


_pac_checksum_table = {
	sigtype : StrongPacChecksum for sigtype in PAC_STRONG_CHECKSUM_TYPES
}

def get_pac_checksum(signature_type:int) -> PacChecksum:
	"""Selects the checksum family for a PAC_SIGNATURE_DATA SignatureType"""
	cls = _pac_checksum_table.get(signature_type, LegacyPacChecksum)
	logger.debug('Signature type %d uses %s' % (signature_type, cls.__name__))
	return cls(signature_type)
