# -*- coding: utf-8 -*-
"""externalid-rotation a module for rotating external ids held in a versioned secret store.

This module drives the four step rotation protocol (createSecret, setSecret, testSecret,
finishSecret) against Google Cloud Secret Manager or AWS Secrets Manager so that a new
external id is only ever served once it has been stored and validated.

"""

import setuptools
import re
from io import open

VERSIONFILE="externalid_rotation/_version.py"
verstrline = open(VERSIONFILE, "rt").read()
VSRE = r"^__version__ = ['\"]([^'\"]*)['\"]"
mo = re.search(VSRE, verstrline, re.M)
if mo:
    verstr = mo.group(1)
else:
    raise RuntimeError("Unable to find version string in %s." % (VERSIONFILE,))

with open("README.md", "r", encoding='utf-8') as fh:
    long_description = fh.read()

setuptools.setup(
    name='externalid_rotation',
    version=verstr,
    description="Idempotent, retry safe rotation of cross-account external ids held in a versioned secret store",
    long_description_content_type="text/markdown",
    long_description=long_description,
    packages=setuptools.find_packages(exclude=["*.tests", "*.tests.*"]),
    tests_require=['pytest'],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    license="MIT",
    scripts=[],
    python_requires=">=3.8",
    install_requires=[
        "google-cloud-secret-manager~=2.0",
        "google-auth>=2.0,<3.0",
        "google-crc32c~=1.0",
        "grpcio~=1.0",
        "boto3~=1.0"
    ],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],

)
