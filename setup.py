from setuptools import setup

package_structure = [
    'enrichsim',
    'enrichsim.facilities',
    'enrichsim.fuel_cycles',
    'enrichsim.utils',
]

requirements = ['simpy',
                'numpy',
                'pandas',
                'tables',
                'matplotlib'
]

setup(
    version='1.0',
    name='enrichsim',
    packages=package_structure,
    package_data={'enrichsim.fuel_cycles': ['*.json']},
    python_requires='>=3.10',
    install_requires=requirements,
    extras_require={'test': ['pytest']},
)
