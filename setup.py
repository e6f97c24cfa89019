from setuptools import setup, find_packages

package_name = 'fingerspell_client'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'setuptools',
        'numpy>=1.24',
        'opencv-python>=4.8',
        'mediapipe>=0.10.9',
        'requests>=2.31',
        'pyttsx3>=2.90',
        'fastapi>=0.104.0',
        'uvicorn>=0.24.0',
        'websockets>=12.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'httpx>=0.25',
        ],
    },
    zip_safe=True,
    description='Real-time fingerspelling sign-to-word recognition client',
    license='MIT',
    entry_points={
        'console_scripts': [
            'fingerspell_client = fingerspell_client.main:main',
        ],
    },
)
