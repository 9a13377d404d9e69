"""
Setup script for the Hosts Webhook Provider.
"""

from setuptools import find_namespace_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = fh.read().splitlines()

setup(
    name="hosts-webhook-provider",
    version="0.1.0",
    description="An external-dns webhook provider that keeps DNS records in a hosts table",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["hosts_webhook", "hosts_webhook.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=8.0", "requests>=2.31"],
    },
    entry_points={
        "console_scripts": [
            "hosts-webhook=hosts_webhook.__main__:run",
        ],
    },
    include_package_data=True,
)
