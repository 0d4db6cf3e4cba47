#!/usr/bin/env python3
#
# Author:
#  Tamas Jos (@skelsec)
#

import enum

# https://docs.microsoft.com/en-us/openspecs/windows_protocols/ms-pac/6655b92f-ab06-490b-845d-037e6987275f
PAC_VERSION = 0

# every descriptor in the buffer directory is ulType(4) + cbBufferSize(4) + Offset(8)
PAC_HEADER_SIZE = 8
PAC_INFO_BUFFER_SIZE = 16
PAC_SIGNATURE_TYPE_SIZE = 4

# https://docs.microsoft.com/en-us/openspecs/windows_protocols/ms-pac/3341cfa2-6ef5-42e0-b7bc-4544884bf399
class PAC_BUFFER_TYPE(enum.Enum):
	LOGON_INFO = 0x00000001 # Logon information (KERB_VALIDATION_INFO)
	CREDENTIALS_INFO = 0x00000002 # Credentials information
	SERVER_CHECKSUM = 0x00000006 # Server checksum
	PRIVSVR_CHECKSUM = 0x00000007 # KDC (privilege server) checksum
	CLIENT_INFO = 0x0000000A # Client name and ticket information
	DELEGATION_INFO = 0x0000000B # Constrained delegation information
	UPN_DNS_INFO = 0x0000000C # User principal name and DNS information
	CLIENT_CLAIMS_INFO = 0x0000000D # Client claims information
	DEVICE_INFO = 0x0000000E # Device information
	DEVICE_CLAIMS_INFO = 0x0000000F # Device claims information
	TICKET_CHECKSUM = 0x00000010 # Ticket checksum
	ATTRIBUTES_INFO = 0x00000011 # PAC attributes
	REQUESTOR = 0x00000012 # PAC requestor
	FULL_PAC_CHECKSUM = 0x00000013 # Extended KDC (privilege server) checksum

class ChecksumType(enum.Enum):
	CRC32 = 1
	RSA_MD4 = 2
	RSA_MD4_DES = 3
	RSA_MD5 = 7
	RSA_MD5_DES = 8
	HMAC_SHA1_DES3_KD = 12
	SHA1 = 14
	HMAC_SHA1_96_AES128 = 15
	HMAC_SHA1_96_AES256 = 16
	HMAC_MD5 = -138

# checksum types that are computed with the RFC3961 keyed-hash construction
# every other signature type falls back to the legacy (RC4) PAC mac
PAC_STRONG_CHECKSUM_TYPES = [
	ChecksumType.HMAC_SHA1_96_AES128.value,
	ChecksumType.HMAC_SHA1_96_AES256.value,
]

class EncryptionType(enum.Enum):
	NULL = 0#
	DES_CBC_CRC = 1#
	DES_CBC_MD4 = 2#
	DES_CBC_MD5 = 3#
	DES3_CBC_MD5 = 5#
	OLD_DES3_CBC_SHA1 = 7#
	DES3_CBC_SHA1 = 16#	-- with key derivation
	AES128_CTS_HMAC_SHA1_96 = 17#
	AES256_CTS_HMAC_SHA1_96 = 18#
	ARCFOUR_HMAC_MD5 = 23#
	ARCFOUR_HMAC_MD5_56 = 24#

# Full list of key_usage numbers: https://tools.ietf.org/html/rfc4120#section-7.5.1
#
class KEY_USAGE(enum.Enum):
	AS_REQ_PA_ENC_TS = 1
	KDC_REP_TICKET = 2
	AS_REP_ENCPART = 3
	TGS_REQ_AD_SESSKEY = 4
	TGS_REQ_AD_SUBKEY = 5
	TGS_REQ_AUTH_CKSUM = 6
	TGS_REQ_AUTH = 7
	TGS_REP_ENCPART_SESSKEY = 8
	TGS_REP_ENCPART_SUBKEY = 9
	AP_REQ_AUTH_CKSUM = 10
	AP_REQ_AUTH = 11
	AP_REP_ENCPART = 12
	KRB_PRIV_ENCPART = 13
	KRB_CRED_ENCPART = 14
	KRB_SAFE_CKSUM = 15
	APP_DATA_ENCRYPT = 16
	APP_DATA_CKSUM = 17
	KRB_ERROR_CKSUM = 18
	AD_KDCISSUED_CKSUM = 19
	AD_MTE = 20
	AD_ITE = 21

# https://tools.ietf.org/html/rfc4120#section-7.5.4
class AuthorizationDataType(enum.Enum):
	AD_IF_RELEVANT = 1
	AD_INTENDED_FOR_SERVER = 2
	AD_INTENDED_FOR_APPLICATION_CLASS = 3
	AD_KDC_ISSUED = 4
	AD_AND_OR = 5
	AD_MANDATORY_TICKET_EXTENSIONS = 6
	AD_IN_TICKET_EXTENSIONS = 7
	AD_MANDATORY_FOR_KDC = 8
	OSF_DCE = 64
	SESAME = 65
	AD_OSF_DCE_PKI_CERTID = 66
	AD_WIN2K_PAC = 128
	AD_ETYPE_NEGOTIATION = 129
