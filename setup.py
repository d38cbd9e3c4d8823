from setuptools import setup, find_packages


setup(
    name="tapecore",
    version="0.1.0",
    description="Gateware for a minimal tape-machine processor, with a reference model",
    license="0-clause BSD License",
    python_requires="~=3.10",
    install_requires=[
        "amaranth>=0.5,<0.6",
        "pyvcd",
    ],
    extras_require={
        "toolchain": [
            "amaranth-yosys",
        ],
    },
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "tapecore = tapecore.cli:run_main"
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved', # ' :: 0-clause BSD License', (not in PyPI)
        'Topic :: Software Development :: Embedded Systems',
        'Topic :: System :: Hardware',
    ],
)
