from setuptools import find_packages, setup

AUTHOR = "Jonathan Schnabel"
LICENSE = "GNU General Public Licence v3.0"
NAME = "server-monitor"
VERSION = "0.1.0"

setup(
    name=NAME,
    packages=find_packages(include=["server_monitor", "server_monitor.*"]),
    entry_points={
        "console_scripts": ["server-monitor=server_monitor.main:main"],
    },
    version=VERSION,
    author=AUTHOR,
    license=LICENSE,
    python_requires=">=3.8",
    install_requires=["psutil", "rich"],
    extras_require={"test": ["pytest"]},
)
