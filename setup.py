from setuptools import setup

setup(
    name='DuplexBuffer',
    version='1.0.0',
    description='Buffered streams which switch between reading and writing over a single file or socket',
    author='Cameron Churchwell',
    author_email='cameronchurchwell@icloud.com',
    install_requires=[],
    extras_require={
        'test': ['pytest']
    },
    python_requires='>=3.10',
    packages=['duplexbuffer', 'duplexbuffer.buffers', 'duplexbuffer.streams', 'duplexbuffer.macros'],
)
