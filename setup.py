from setuptools import find_packages, setup

with open("README.md") as f:
    readme = f.read()

setup(
    name="alestep",
    version=0.1,
    description="Theta-scheme time integration with Newton iteration and IMEX moving-mesh steps",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["alestep", "alestep.*"]),
    install_requires=["numpy>=1.16.6", "scipy>=1.1.0", "packaging"],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.7",
)
