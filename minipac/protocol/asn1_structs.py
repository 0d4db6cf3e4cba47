#!/usr/bin/env python3
#
# Author:
#  Tamas Jos (@skelsec)
#

from asn1crypto import core

# KerberosV5Spec2 DEFINITIONS EXPLICIT TAGS ::=
TAG = 'explicit'


class Int32(core.Integer):
    """Int32 ::= INTEGER (-2147483648..2147483647)
    """


class EncryptionKey(core.Sequence):
	"""
	EncryptionKey ::= SEQUENCE {
	keytype[0]		krb5int32,
	keyvalue[1]		OCTET STRING
	}
	"""
	_fields = [
		('keytype', Int32, {'tag_type': TAG, 'tag': 0}),
		('keyvalue', core.OctetString, {'tag_type': TAG, 'tag': 1}),
	]


class AuthorizationDataElement(core.Sequence):
	"""
	AuthorizationData ::= SEQUENCE OF SEQUENCE {
		ad-type         [0] Int32,
		ad-data         [1] OCTET STRING
	}
	"""
	_fields = [
		('ad-type', Int32, {'tag_type': TAG, 'tag': 0}),
		('ad-data', core.OctetString, {'tag_type': TAG, 'tag': 1}),
	]


class AuthorizationData(core.SequenceOf):
	_child_spec = AuthorizationDataElement


# AD-IF-RELEVANT ::= AuthorizationData
class AD_IF_RELEVANT(AuthorizationData):
	pass
