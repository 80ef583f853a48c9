# coding: utf-8
from setuptools import setup, find_packages
from setuptools.command.build_py import build_py

package = "spatialcorr"

# Get __version__ from PACKAGE_NAME/__init__.py without importing the package
# __version__ has to be defined in the first line
with open('spatialcorr/__init__.py', 'r') as f:
    exec(f.readline())

with open("README.md", "r", encoding="utf8") as file:
    long_description = file.read()


def _get_requirements_from_files(groups_files):
    groups_reqlist = {}

    for k,v in groups_files.items():
        with open(v, 'r') as f:
            pkg_list = [p for p in f.read().splitlines() if p and not p.startswith('#')]
        groups_reqlist[k] = pkg_list

    return groups_reqlist

def setup_package():
    _groups_files = {
        'base': 'requirements.txt',
        'tests': 'requirements_tests.txt',
    }

    reqs = _get_requirements_from_files(_groups_files)
    install_reqs = reqs.pop('base')
    extras_reqs = reqs

    setup(
        name=package,
        version=__version__,
        description="Spatial autocorrelation and hot spot analysis of areal data.",
        long_description=long_description,
        long_description_content_type="text/markdown",
        keywords="spatial statistics, moran, lisa, hot spots",
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Science/Research",
            "Topic :: Scientific/Engineering",
            "Topic :: Scientific/Engineering :: GIS",
            "License :: OSI Approved :: BSD License",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
        ],
        license="3-Clause BSD",
        python_requires=">=3.9",
        packages=find_packages(),
        install_requires=install_reqs,
        extras_require=extras_reqs,
        zip_safe=False,
        cmdclass={"build_py": build_py},
    )


if __name__ == "__main__":
    setup_package()
