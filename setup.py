from setuptools import setup, find_packages

setup(
    name='grab-serial-relay',
    version='1.0.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'setuptools',
        'numpy>=1.24',
        'pyserial>=3.5',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.8',
    zip_safe=True,
    maintainer='Hasan Çoban',
    maintainer_email='hasancoban@std.iyte.edu.tr',
    description='Relay XR grab/release events to a serial haptic controller',
    license='MIT',
    entry_points={
        'console_scripts': [
            'grab_serial_relay = grab_serial_relay.main:main',
        ],
    },
)
