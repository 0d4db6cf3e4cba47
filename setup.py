from setuptools import setup, find_packages
import re

VERSIONFILE="minipac/_version.py"
verstrline = open(VERSIONFILE, "rt").read()
VSRE = r"^__version__ = ['\"]([^'\"]*)['\"]"
mo = re.search(VSRE, verstrline, re.M)
if mo:
	verstr = mo.group(1)
else:
	raise RuntimeError("Unable to find version string in %s." % (VERSIONFILE,))

setup(
	# Application name:
	name="minipac",

	# Version number (initial):
	version=verstr,

	# Application author details:
	author="Tamas Jos",
	author_email="info@skelsec.com",

	# Packages
	packages=find_packages(exclude=["tests*"]),

	# Include additional files into the package
	include_package_data=True,

	zip_safe=True,
	#
	# license="LICENSE.txt",
	description="Kerberos PAC parsing and signature validation in pure Python",

	# long_description=open("README.txt").read(),
	python_requires='>=3.7',
	classifiers=[
		"Programming Language :: Python :: 3.7",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
	],
	install_requires=[
		'asn1crypto>=1.5.1',
		'unicrypto>=0.0.10',
	],
	extras_require={
		'testing': [
			'pytest',
			'cryptography',
		],
	},

	entry_points={
		'console_scripts': [
			'minipac-validate = minipac.examples.pacvalidate:main',
		],
	}
)
