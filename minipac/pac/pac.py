
# https://docs.microsoft.com/en-us/openspecs/windows_protocols/ms-pac/a1c36b00-1fca-415c-a4ca-e66e98844760
from __future__ import annotations
import io
from typing import List, Tuple

from minipac import logger
from minipac.protocol.constants import PAC_BUFFER_TYPE, PAC_HEADER_SIZE, \
	PAC_INFO_BUFFER_SIZE, PAC_SIGNATURE_TYPE_SIZE, AuthorizationDataType
from minipac.protocol.errors import EmptyTokenError, MalformedTokenError, MissingSignatureError
from minipac.protocol.encryption import Key
from minipac.protocol.asn1_structs import AuthorizationData, AD_IF_RELEVANT
from minipac.pac.structures import PACTYPE, PAC_INFO_BUFFER, PAC_SIGNATURE_DATA, BufferRange
from minipac.pac.checksum import get_pac_checksum


def canonicalize(data:bytes, *signature_ranges:BufferRange) -> bytes:
	"""
	Returns a copy of data with the checksum bytes of every given signature
	buffer set to zero. The 4-byte SignatureType of each buffer is kept.
	None entries (missing signatures) are skipped.
	"""
	checksum_data = bytearray(data)
	for r in signature_ranges:
		if r is None:
			continue
		start = r.start + PAC_SIGNATURE_TYPE_SIZE
		checksum_data[start:r.end] = b'\x00' * (r.end - start)
	return bytes(checksum_data)


class PAC:
	def __init__(self):
		self.data:bytes = None
		self.header:PACTYPE = None
		self.buffers:List[PAC_INFO_BUFFER] = []
		self.logon_info:bytes = None
		self.logon_info_range:BufferRange = None
		self.server_signature:PAC_SIGNATURE_DATA = None
		self.server_signature_range:BufferRange = None
		self.kdc_signature:PAC_SIGNATURE_DATA = None
		self.kdc_signature_range:BufferRange = None
		# every server/KDC signature buffer seen, duplicates included
		self.signature_ranges:List[BufferRange] = []

	@staticmethod
	def from_bytes(data:bytes) -> PAC:
		"""Parses the buffer directory. Does NOT check any signature!"""
		if data is None or len(data) <= PAC_HEADER_SIZE:
			raise EmptyTokenError()
		data = bytes(data)

		pac = PAC()
		pac.data = data
		pac.header = PACTYPE.from_buffer(io.BytesIO(data))
		pac.buffers = pac.header.Buffers
		for infobuffer in pac.buffers:
			r = infobuffer.get_range(len(data))
			logger.debug('PAC buffer type 0x%x size %d offset %d' % (infobuffer.ulType, infobuffer.cbBufferSize, infobuffer.Offset))
			if infobuffer.ulType == PAC_BUFFER_TYPE.LOGON_INFO.value:
				pac.logon_info = data[r.start:r.end]
				pac.logon_info_range = r
			elif infobuffer.ulType == PAC_BUFFER_TYPE.SERVER_CHECKSUM.value:
				pac.server_signature = PAC_SIGNATURE_DATA.from_bytes(data[r.start:r.end])
				pac.server_signature_range = r
				pac.signature_ranges.append(r)
			elif infobuffer.ulType == PAC_BUFFER_TYPE.PRIVSVR_CHECKSUM.value:
				pac.kdc_signature = PAC_SIGNATURE_DATA.from_bytes(data[r.start:r.end])
				pac.kdc_signature_range = r
				pac.signature_ranges.append(r)
		return pac

	@staticmethod
	def validate(data:bytes, key:Key, kdc_key:Key = None) -> PAC:
		"""
		Parses the PAC and checks the server signature with key.
		If kdc_key is given the KDC signature is checked as well.
		Returns the parsed PAC, raises a PacError subclass otherwise.
		"""
		pac = PAC.from_bytes(data)
		pac.verify_server_signature(key)
		if kdc_key is not None:
			pac.verify_kdc_signature(kdc_key)
		return pac

	@staticmethod
	def from_authorization_data(authdata, key:Key, kdc_key:Key = None) -> PAC:
		"""Finds the AD-WIN2K-PAC element in a ticket's authorization-data and validates it"""
		try:
			if isinstance(authdata, bytes):
				authdata = AuthorizationData.load(authdata)
			data = PAC.find_pac(authdata)
		except ValueError as e:
			raise MalformedTokenError('Authorization data could not be decoded: %s' % e) from e
		if data is None:
			raise EmptyTokenError('No AD-WIN2K-PAC element in authorization data')
		return PAC.validate(data, key, kdc_key)

	@staticmethod
	def find_pac(authdata:AuthorizationData) -> bytes:
		for element in authdata:
			adtype = element['ad-type'].native
			if adtype == AuthorizationDataType.AD_IF_RELEVANT.value:
				data = PAC.find_pac(AD_IF_RELEVANT.load(element['ad-data'].native))
				if data is not None:
					return data
			elif adtype == AuthorizationDataType.AD_WIN2K_PAC.value:
				return element['ad-data'].native
		return None

	def get_buffer(self, ulType:int) -> bytes:
		"""Returns the data of the last buffer with the given type, or None"""
		if isinstance(ulType, PAC_BUFFER_TYPE):
			ulType = ulType.value
		result = None
		for infobuffer in self.buffers:
			if infobuffer.ulType == ulType:
				result = infobuffer.get_data(self.data)
		return result

	def get_checksum_data(self) -> bytes:
		"""The PAC as it looked before the signatures were written into it"""
		return canonicalize(self.data, *self.signature_ranges)

	def verify_server_signature(self, key:Key):
		if self.server_signature is None:
			raise MissingSignatureError('Server signature buffer not present')
		cksum = get_pac_checksum(self.server_signature.SignatureType)
		cksum.verify(key, self.get_checksum_data(), self.server_signature.Signature)

	def verify_kdc_signature(self, kdc_key:Key):
		"""The KDC signature is a checksum over the server signature's checksum bytes"""
		if self.server_signature is None:
			raise MissingSignatureError('Server signature buffer not present')
		if self.kdc_signature is None:
			raise MissingSignatureError('KDC signature buffer not present')
		cksum = get_pac_checksum(self.kdc_signature.SignatureType)
		cksum.verify(kdc_key, self.server_signature.Signature, self.kdc_signature.Signature)

	@staticmethod
	def sign(data:bytes, server_key:Key, kdc_key:Key = None) -> bytes:
		"""
		Fills in the server (and optionally the KDC) checksum of an already
		laid out PAC. The signature buffers must carry their SignatureType and
		be sized for the checksum.
		"""
		pac = PAC.from_bytes(data)
		if pac.server_signature is None:
			raise MissingSignatureError('Server signature buffer not present')
		result = bytearray(pac.data)

		def write_checksum(r:BufferRange, checksum:bytes):
			start = r.start + PAC_SIGNATURE_TYPE_SIZE
			if r.end - start != len(checksum):
				raise MalformedTokenError('Signature buffer holds %d bytes, checksum is %d' % (r.end - start, len(checksum)))
			result[start:r.end] = checksum

		server_cksum = get_pac_checksum(pac.server_signature.SignatureType).checksum(server_key, pac.get_checksum_data())
		write_checksum(pac.server_signature_range, server_cksum)
		if kdc_key is not None:
			if pac.kdc_signature is None:
				raise MissingSignatureError('KDC signature buffer not present')
			kdc_cksum = get_pac_checksum(pac.kdc_signature.SignatureType).checksum(kdc_key, server_cksum)
			write_checksum(pac.kdc_signature_range, kdc_cksum)
		return bytes(result)

	@staticmethod
	def construct(buffers:List[Tuple[int, bytes]]) -> bytes:
		"""
		Lays out a PAC from (ulType, data) pairs. Buffers are placed after the
		directory on 8-byte boundaries. Use empty_signature to reserve room for
		a checksum that sign() fills in later.
		"""
		header = PACTYPE()
		offset = PAC_HEADER_SIZE + len(buffers) * PAC_INFO_BUFFER_SIZE
		body = b''
		for ulType, bufferdata in buffers:
			if isinstance(ulType, PAC_BUFFER_TYPE):
				ulType = ulType.value
			pad = (8 - (offset % 8)) % 8
			body += b'\x00' * pad
			offset += pad
			header.Buffers.append(PAC_INFO_BUFFER(ulType, len(bufferdata), offset))
			body += bufferdata
			offset += len(bufferdata)
		return header.to_bytes() + body

	@staticmethod
	def empty_signature(signature_type:int) -> bytes:
		"""A signature buffer of the right size with a zeroed checksum"""
		cksumlen = get_pac_checksum(signature_type).checksum_len()
		return PAC_SIGNATURE_DATA(signature_type, b'\x00' * cksumlen).to_bytes()

	def __str__(self):
		t = '== PAC ==\r\n'
		t += 'Version: %s\r\n' % self.header.Version
		for infobuffer in self.buffers:
			t += 'Buffer: %s\r\n' % infobuffer
		if self.server_signature is not None:
			t += 'Server signature: %s\r\n' % self.server_signature
		if self.kdc_signature is not None:
			t += 'KDC signature: %s\r\n' % self.kdc_signature
		return t
