import setuptools

setuptools.setup(
    name="harmonia",
    version="0.4.0",
    description="Vertical profile harmonization and averaging kernel smoothing "
    "for atmospheric measurement products",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="BSD-3-Clause",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=setuptools.find_packages("src"),
    package_data={"": ["*.pyi"]},
    include_package_data=True,
    install_requires=[
        "attrs",
        "dynaconf",
        "lazy_loader",
        "numpy",
        "pandas",
        "pint",
        "rich",
        "scipy",
        "tqdm",
        "xarray",
    ],
    extras_require={
        "test": ["pytest"],
    },
    zip_safe=False,
)
