"""Pipeline stages, run in order by :func:`JarCDS.pipeline.run_pipeline`.

- :mod:`~JarCDS.stages.classlists` (A) writes the shared class list.
- :mod:`~JarCDS.stages.eversion` (B) unpacks self-contained packages.
- :mod:`~JarCDS.stages.shared` (C) collects shared libraries and dumps the archive.
- :mod:`~JarCDS.stages.private` (D) rewrites each application's classpath.
"""
