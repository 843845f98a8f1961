from setuptools import setup, find_packages

setup(
    name="radolan2xr",
    version="0.1.0",
    description="Tools for decoding DWD RADOLAN composite archives into xarray grid stacks",
    author="Alfonso Ladino, Max Grover",
    author_email="alfonso8@illinois.edu",
    url="https://github.com/aladinor/radolan2xr",
    packages=find_packages(include=["radolan2xr", "radolan2xr.*"]),
    include_package_data=True,
    package_data={"radolan2xr.config": ["*.json"]},
    python_requires=">=3.11",
    install_requires=[
        "numpy",
        "pandas<3",
        "pydantic",
        "dask[bag]",
        "zarr",
        "xarray>=2025",
        "pyproj",
        "rioxarray",
        "rasterio",
    ],
    extras_require={
        "dev": ["pytest", "pytest-cov", "flake8"],
    },
    classifiers=[
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
