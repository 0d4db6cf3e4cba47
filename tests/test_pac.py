# Description: Tests for PAC parsing and signature validation

import hmac
import hashlib
import pytest
from minipac.pac.pac import PAC, canonicalize
from minipac.pac.structures import PACTYPE, PAC_INFO_BUFFER, PAC_SIGNATURE_DATA, BufferRange
from minipac.pac.checksum import get_pac_checksum, StrongPacChecksum, LegacyPacChecksum
from minipac.protocol.constants import PAC_BUFFER_TYPE, ChecksumType, AuthorizationDataType
from minipac.protocol.encryption import Key, Enctype, Cksumtype, _nfold
from minipac.protocol.errors import PacError, PacErrorCode, EmptyTokenError, InvalidVersionError, \
	MalformedTokenError, MissingSignatureError, ChecksumUnavailableError, SignatureInvalidError
from minipac.protocol.asn1_structs import AuthorizationData, AD_IF_RELEVANT
from binascii import unhexlify as h
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

RC4_KEY = Key(Enctype.RC4, h('F7D3A155AF5E238A0B7A871A96BA2AB2'))
AES128_KEY = Key(Enctype.AES128, h('9062430C8CDA3388922E6D6A509F5B7A'))
AES256_KEY = Key(Enctype.AES256, h('B1AE4CD8462AFF1677053CC9279AAC30B796FB81CE21474DD3DDBCFEA4EC76D7'))
KRBTGT_KEY = Key(Enctype.RC4, h('63fb7d6792655d3167d4bedf2548310b'))

# NDR serialized KERB_VALIDATION_INFO is opaque here, any bytes will do
LOGON_INFO = h('01100800cccccccc') + bytes(range(40))

LEGACY = ChecksumType.HMAC_MD5.value
AES128 = ChecksumType.HMAC_SHA1_96_AES128.value
AES256 = ChecksumType.HMAC_SHA1_96_AES256.value


def legacy_mac(key, data):
	# the RC4 PAC mac, computed independently of minipac
	ksign = hmac.new(key, b'signaturekey\0', hashlib.md5).digest()
	tmp = hashlib.md5(b'\x11\x00\x00\x00' + data).digest()
	return hmac.new(ksign, tmp, hashlib.md5).digest()

def strong_mac(key, data):
	# RFC3961 DK(key, usage 17 | 0x99) + HMAC-SHA1-96, on cryptography's AES instead of unicrypto
	encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
	block = _nfold(b'\x00\x00\x00\x11\x99', 16)
	kc = b''
	while len(kc) < len(key):
		block = encryptor.update(block)
		kc += block
	return hmac.new(kc[:len(key)], data, hashlib.sha1).digest()[:12]

def layout(server_type = LEGACY, kdc_type = LEGACY, extra = []):
	buffers = [(PAC_BUFFER_TYPE.LOGON_INFO, LOGON_INFO)]
	buffers += extra
	if server_type is not None:
		buffers.append((PAC_BUFFER_TYPE.SERVER_CHECKSUM, PAC.empty_signature(server_type)))
	if kdc_type is not None:
		buffers.append((PAC_BUFFER_TYPE.PRIVSVR_CHECKSUM, PAC.empty_signature(kdc_type)))
	return PAC.construct(buffers)

def signed_pac(key = RC4_KEY, server_type = LEGACY, kdc_key = None, kdc_type = LEGACY, extra = []):
	return PAC.sign(layout(server_type, kdc_type, extra), key, kdc_key)

def flip_bit(data, pos, bit):
	t = bytearray(data)
	t[pos] ^= (1 << bit)
	return bytes(t)


def test_empty_token():
	for i in range(9):
		with pytest.raises(EmptyTokenError):
			PAC.validate(b'\x00' * i, RC4_KEY)
	with pytest.raises(EmptyTokenError):
		PAC.from_bytes(None)

def test_invalid_version():
	for version in [1, 2, 0x80000000, 0xFFFFFFFF]:
		data = (3).to_bytes(4, 'little') + version.to_bytes(4, 'little') + b'\xff' * 5
		with pytest.raises(InvalidVersionError):
			PAC.validate(data, RC4_KEY)

def test_invalid_version_wellformed_body():
	data = bytearray(signed_pac())
	data[4] = 1
	with pytest.raises(InvalidVersionError):
		PAC.validate(bytes(data), RC4_KEY)

def test_buffer_past_end():
	header = PACTYPE()
	header.Buffers.append(PAC_INFO_BUFFER(PAC_BUFFER_TYPE.LOGON_INFO.value, 100, 24))
	data = header.to_bytes() + b'\x00' * 10
	with pytest.raises(MalformedTokenError):
		PAC.from_bytes(data)

def test_offset_past_end():
	data = bytearray(signed_pac())
	# Offset field of the first descriptor
	data[16:24] = (0xFFFFFFFFFFFFFFFF).to_bytes(8, 'little')
	with pytest.raises(MalformedTokenError):
		PAC.validate(bytes(data), RC4_KEY)

def test_size_past_end():
	data = bytearray(signed_pac())
	data[12:16] = (0xFFFFFFFF).to_bytes(4, 'little')
	with pytest.raises(MalformedTokenError):
		PAC.validate(bytes(data), RC4_KEY)

def test_truncated_directory():
	data = (5).to_bytes(4, 'little') + (0).to_bytes(4, 'little') + b'\x01' * 20
	with pytest.raises(MalformedTokenError):
		PAC.from_bytes(data)

def test_short_signature_buffer():
	data = PAC.construct([
		(PAC_BUFFER_TYPE.LOGON_INFO, LOGON_INFO),
		(PAC_BUFFER_TYPE.SERVER_CHECKSUM, b'\x76\xff'),
	])
	with pytest.raises(MalformedTokenError):
		PAC.from_bytes(data)

def test_missing_server_signature():
	data = layout(server_type = None, kdc_type = None)
	pac = PAC.from_bytes(data)
	assert pac.server_signature is None
	assert pac.logon_info == LOGON_INFO
	with pytest.raises(MissingSignatureError):
		PAC.validate(data, RC4_KEY)

def test_missing_logon_info():
	data = PAC.construct([(PAC_BUFFER_TYPE.SERVER_CHECKSUM, PAC.empty_signature(LEGACY))])
	data = PAC.sign(data, RC4_KEY)
	pac = PAC.validate(data, RC4_KEY)
	assert pac.logon_info is None

def test_roundtrip_legacy():
	pac = PAC.validate(signed_pac(RC4_KEY, LEGACY), RC4_KEY)
	assert pac.logon_info == LOGON_INFO
	assert pac.server_signature.SignatureType == LEGACY
	assert len(pac.server_signature.Signature) == 16
	assert pac.kdc_signature is not None

def test_roundtrip_aes128():
	pac = PAC.validate(signed_pac(AES128_KEY, AES128, kdc_type = AES128), AES128_KEY)
	assert pac.logon_info == LOGON_INFO
	assert len(pac.server_signature.Signature) == 12

def test_roundtrip_aes256():
	pac = PAC.validate(signed_pac(AES256_KEY, AES256, kdc_type = AES256), AES256_KEY)
	assert pac.logon_info == LOGON_INFO
	assert pac.server_signature.SignatureType == AES256

def test_wrong_key():
	data = signed_pac(RC4_KEY, LEGACY)
	with pytest.raises(SignatureInvalidError):
		PAC.validate(data, KRBTGT_KEY)

def test_tamper_logon_info():
	data = signed_pac(RC4_KEY, LEGACY)
	pac = PAC.from_bytes(data)
	r = pac.logon_info_range
	for pos in range(r.start, r.end):
		for bit in range(8):
			with pytest.raises(SignatureInvalidError):
				PAC.validate(flip_bit(data, pos, bit), RC4_KEY)

def test_tamper_logon_info_aes():
	data = signed_pac(AES256_KEY, AES256, kdc_type = AES256)
	r = PAC.from_bytes(data).logon_info_range
	for pos in [r.start, r.start + 7, r.end - 1]:
		with pytest.raises(SignatureInvalidError):
			PAC.validate(flip_bit(data, pos, 3), AES256_KEY)

def test_tamper_signature():
	data = signed_pac(RC4_KEY, LEGACY)
	r = PAC.from_bytes(data).server_signature_range
	for pos in range(r.start + 4, r.end):
		for bit in range(8):
			with pytest.raises(SignatureInvalidError):
				PAC.validate(flip_bit(data, pos, bit), RC4_KEY)

def test_kdc_signature_not_covered():
	# the KDC checksum is zeroed before the server checksum is computed
	data = bytearray(signed_pac(RC4_KEY, LEGACY))
	r = PAC.from_bytes(bytes(data)).kdc_signature_range
	data[r.start+4:r.end] = b'\x42' * (r.end - r.start - 4)
	pac = PAC.validate(bytes(data), RC4_KEY)
	assert pac.kdc_signature.Signature == b'\x42' * 16

def test_unknown_buffers_ignored():
	extra = [(0x99, b'\x01\x02\x03'), (PAC_BUFFER_TYPE.CLIENT_INFO, b'\xaa' * 18)]
	data = signed_pac(RC4_KEY, LEGACY, extra = extra)
	pac = PAC.validate(data, RC4_KEY)
	assert pac.logon_info == LOGON_INFO
	assert len(pac.buffers) == 5
	assert pac.get_buffer(0x99) == b'\x01\x02\x03'
	assert pac.get_buffer(PAC_BUFFER_TYPE.CLIENT_INFO) == b'\xaa' * 18
	assert pac.get_buffer(PAC_BUFFER_TYPE.UPN_DNS_INFO) is None

def test_tamper_unknown_buffer():
	data = signed_pac(RC4_KEY, LEGACY, extra = [(0x99, b'\x01\x02\x03')])
	pac = PAC.from_bytes(data)
	offset = [ib for ib in pac.buffers if ib.ulType == 0x99][0].Offset
	with pytest.raises(SignatureInvalidError):
		PAC.validate(flip_bit(data, offset, 0), RC4_KEY)

def test_canonicalize():
	data = bytes(range(1, 33))
	result = canonicalize(data, BufferRange(4, 12), None, BufferRange(20, 24))
	assert len(result) == len(data)
	assert result[:8] == data[:8]
	assert result[8:12] == b'\x00' * 4
	assert result[12:24] == data[12:24]
	assert result[24:] == data[24:]
	assert canonicalize(data) == data
	assert canonicalize(data, None, None) == data

def test_checksum_data():
	data = signed_pac(RC4_KEY, LEGACY)
	pac = PAC.from_bytes(data)
	checksum_data = pac.get_checksum_data()
	assert len(checksum_data) == len(data)
	for r in [pac.server_signature_range, pac.kdc_signature_range]:
		assert checksum_data[r.start:r.start+4] == data[r.start:r.start+4]
		assert checksum_data[r.start+4:r.end] == b'\x00' * (r.end - r.start - 4)
	assert checksum_data == layout()

def test_dispatch():
	assert isinstance(get_pac_checksum(AES128), StrongPacChecksum)
	assert isinstance(get_pac_checksum(AES256), StrongPacChecksum)
	for sigtype in [LEGACY, 0, 7, 17, 23, -1]:
		assert isinstance(get_pac_checksum(sigtype), LegacyPacChecksum)

def test_legacy_known_answer():
	data = layout()
	expected = legacy_mac(RC4_KEY.contents, data)
	assert get_pac_checksum(LEGACY).checksum(RC4_KEY, data) == expected
	# unknown types go the same way
	assert get_pac_checksum(0x7777).checksum(RC4_KEY, data) == expected

def test_strong_known_answer():
	data = layout(AES256, AES256)
	aes256 = get_pac_checksum(AES256).checksum(AES256_KEY, data)
	aes128 = get_pac_checksum(AES128).checksum(AES128_KEY, data)
	assert len(aes256) == 12 and len(aes128) == 12
	assert aes256 == strong_mac(AES256_KEY.contents, data)
	assert aes128 == strong_mac(AES128_KEY.contents, data)
	assert aes256 != legacy_mac(AES256_KEY.contents, data)[:12]

def test_strong_known_answer_signed():
	data = signed_pac(AES256_KEY, AES256, KRBTGT_KEY, LEGACY)
	pac = PAC.from_bytes(data)
	assert pac.server_signature.Signature == strong_mac(AES256_KEY.contents, pac.get_checksum_data())
	assert pac.kdc_signature.Signature == legacy_mac(KRBTGT_KEY.contents, pac.server_signature.Signature)

def test_strong_wrong_key_type():
	data = signed_pac(AES256_KEY, AES256, kdc_type = AES256)
	with pytest.raises(ChecksumUnavailableError):
		PAC.validate(data, RC4_KEY)
	with pytest.raises(ChecksumUnavailableError):
		PAC.validate(data, AES128_KEY)

def test_key_not_a_key():
	data = signed_pac(RC4_KEY, LEGACY)
	with pytest.raises(ChecksumUnavailableError):
		PAC.validate(data, RC4_KEY.contents)

def test_concrete_scenario():
	key = h('00112233445566778899aabbccddeeff')
	logon_info = b'LOGON-INFO-BYTES' * 3
	header = PACTYPE()
	header.Buffers.append(PAC_INFO_BUFFER(1, len(logon_info), 64))
	header.Buffers.append(PAC_INFO_BUFFER(6, 20, 112))
	header.Buffers.append(PAC_INFO_BUFFER(7, 20, 136))
	directory = header.to_bytes()
	assert directory[:8] == h('0300000000000000')
	assert len(directory) == 56

	legacy_tag = h('76ffffff')
	data = directory + b'\x00' * 8
	data += logon_info
	data += legacy_tag + b'\x00' * 16 + b'\x00' * 4
	data += legacy_tag + b'\x00' * 16
	assert len(data) == 156

	server_mac = legacy_mac(key, data)
	kdc_mac = h('cafebabe') * 4
	signed = data[:116] + server_mac + data[132:140] + kdc_mac

	pac = PAC.validate(signed, Key(Enctype.RC4, key))
	assert pac.logon_info == logon_info
	assert pac.server_signature.Signature == server_mac
	assert pac.kdc_signature.Signature == kdc_mac
	assert pac.server_signature_range == BufferRange(112, 132)
	assert pac.kdc_signature_range == BufferRange(136, 156)

def test_kdc_signature():
	data = signed_pac(RC4_KEY, LEGACY, kdc_key = KRBTGT_KEY)
	pac = PAC.validate(data, RC4_KEY, kdc_key = KRBTGT_KEY)
	assert pac.kdc_signature.Signature == legacy_mac(KRBTGT_KEY.contents, pac.server_signature.Signature)
	with pytest.raises(SignatureInvalidError):
		PAC.validate(data, RC4_KEY, kdc_key = RC4_KEY)

def test_kdc_signature_mixed_families():
	data = signed_pac(AES256_KEY, AES256, kdc_key = KRBTGT_KEY, kdc_type = LEGACY)
	pac = PAC.validate(data, AES256_KEY, kdc_key = KRBTGT_KEY)
	assert pac.logon_info == LOGON_INFO
	assert len(pac.kdc_signature.Signature) == 16

def test_kdc_signature_not_checked_by_default():
	data = signed_pac(RC4_KEY, LEGACY)
	pac = PAC.validate(data, RC4_KEY)
	with pytest.raises(SignatureInvalidError):
		pac.verify_kdc_signature(KRBTGT_KEY)

def test_kdc_signature_missing():
	data = signed_pac(RC4_KEY, LEGACY, kdc_type = None)
	pac = PAC.validate(data, RC4_KEY)
	assert pac.kdc_signature is None
	with pytest.raises(MissingSignatureError):
		PAC.validate(data, RC4_KEY, kdc_key = KRBTGT_KEY)
	with pytest.raises(MissingSignatureError):
		PAC.sign(data, RC4_KEY, KRBTGT_KEY)

def test_sign_wrong_signature_size():
	data = PAC.construct([
		(PAC_BUFFER_TYPE.LOGON_INFO, LOGON_INFO),
		(PAC_BUFFER_TYPE.SERVER_CHECKSUM, PAC_SIGNATURE_DATA(AES256, b'\x00' * 16).to_bytes()),
	])
	with pytest.raises(MalformedTokenError):
		PAC.sign(data, AES256_KEY)

def test_construct_alignment():
	data = PAC.construct([(0x99, b'\x01'), (0x98, b'\x02\x03')])
	pac = PAC.from_bytes(data)
	assert [ib.Offset for ib in pac.buffers] == [40, 48]
	assert pac.get_buffer(0x98) == b'\x02\x03'

def test_from_authorization_data():
	data = signed_pac(RC4_KEY, LEGACY)
	ifrelevant = AD_IF_RELEVANT([{'ad-type': AuthorizationDataType.AD_WIN2K_PAC.value, 'ad-data': data}])
	authdata = AuthorizationData([
		{'ad-type': AuthorizationDataType.AD_IF_RELEVANT.value, 'ad-data': ifrelevant.dump()},
	])
	pac = PAC.from_authorization_data(authdata.dump(), RC4_KEY)
	assert pac.logon_info == LOGON_INFO

def test_from_authorization_data_no_pac():
	authdata = AuthorizationData([{'ad-type': AuthorizationDataType.AD_KDC_ISSUED.value, 'ad-data': b'\x00'}])
	with pytest.raises(EmptyTokenError):
		PAC.from_authorization_data(authdata.dump(), RC4_KEY)

def test_from_authorization_data_truncated():
	# SEQUENCE claims 5 content bytes, only 4 follow
	for data in [b'\x30\x05\x30\x03\xa0\x01', b'\x30']:
		with pytest.raises(MalformedTokenError) as excinfo:
			PAC.from_authorization_data(data, RC4_KEY)
		assert isinstance(excinfo.value, PacError)

def test_error_codes():
	with pytest.raises(PacError) as excinfo:
		PAC.validate(b'\x00', RC4_KEY)
	assert excinfo.value.errorcode == PacErrorCode.EMPTY_TOKEN
	with pytest.raises(PacError) as excinfo:
		PAC.validate(signed_pac(RC4_KEY, LEGACY), KRBTGT_KEY)
	assert excinfo.value.errorcode == PacErrorCode.SIGNATURE_INVALID
	assert 'invalid' in str(excinfo.value)

def test_str():
	pac = PAC.from_bytes(signed_pac(RC4_KEY, LEGACY))
	desc = str(pac)
	assert 'LOGON_INFO' in desc
	assert 'HMAC_MD5' in desc
