from setuptools import find_packages, setup

# Configuración del paquete
setup(
    name="fem-link",
    version="0.1.0",
    description="Linear elastic two-node link elements for finite element models",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "PyYAML",
    ],
    extras_require={
        "mpi": ["mpi4py"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "fem-link-inspect=fem_link.cli.inspect_link:main",
        ],
    },
)
