# coding=utf-8
from setuptools import setup

test_requirements = [
    "black>=19.10b0",
    "codecov>=2.1.4",
    "flake8>=3.8.3",
    "flake8-debugger>=3.2.1",
    "pytest>=5.4.3",
    "pytest-cov>=2.9.0",
]

dev_requirements = [
    *test_requirements,
    "bump2version>=1.0.1",
    "coverage>=5.1",
    "ipython>=7.15.0",
    "tox>=3.15.2",
    "twine>=3.1.1",
    "wheel>=0.34.2",
]

requirements = ["webcolors>=24.6", "pyusb>=1.2.1"]


extra_requirements = {
    "test": test_requirements,
    "dev": dev_requirements,
    "all": [
        *requirements,
        *dev_requirements,
    ],
}


setup(
    name="blinkstick-usb",
    packages=["blinkstick"],
    version="0.1.0",
    description="A Python library to control BlinkStick USB LED devices",
    author="blinkstick-usb contributors",
    license="LGPLv3+",
    include_package_data=True,
    package_data={"blinkstick": ["py.typed"]},
    keywords=[
        "blinkstick",
        "usb",
        "led",
        "hid",
    ],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: "
        + "GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Hardware :: Universal Serial Bus (USB) :: Human Interface Device (HID)",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.8",
    tests_require=test_requirements,
    extras_require=extra_requirements,
    entry_points={"console_scripts": ["blinkstick = blinkstick.cli:main"]},
    install_requires=requirements,
)
