import logging
import os
from typing import List

from calificaciones.errores import ErrorLecturaLibro
from calificaciones.filtros import ResultadoFiltro, estudiantes_unicos, filtrar_datos
from calificaciones.io import leer_libro, parsear_libro
from calificaciones.modelos import EstadoFiltros, GrupoCurso, Materia
from calificaciones.procesamiento import agrupar_cursos, derivar_taller

logger = logging.getLogger(__name__)


def _nombre_archivo(archivo) -> str:
    nombre = getattr(archivo, "name", None)
    if nombre:
        return os.path.basename(nombre)
    if isinstance(archivo, (str, os.PathLike)):
        return os.path.basename(os.fspath(archivo))
    return "archivo"


class Tablero:
    """
    Dueño del conjunto de materias cargadas durante la sesión.

    Las cargas solo agregan materias; nunca reemplazan ni eliminan las existentes.
    Todo lo demás (cursos, filtros, estadísticas) se recalcula desde `materias`.
    """

    def __init__(self):
        self._materias: List[Materia] = []

    @property
    def materias(self) -> List[Materia]:
        return list(self._materias)

    def __len__(self) -> int:
        return len(self._materias)

    def agregar_materias(self, materias: List[Materia]) -> None:
        self._materias.extend(materias)

    def cargar_archivos(self, archivos) -> int:
        """
        Lee un lote de archivos (bytes, rutas u objetos con .read() y .name).
        Si un archivo no se puede leer, se propaga ErrorLecturaLibro y no se
        agrega ninguna materia del lote. Devuelve la cantidad de materias agregadas.
        """
        nuevas: List[Materia] = []
        for archivo in archivos:
            nombre = _nombre_archivo(archivo)
            try:
                hojas = leer_libro(archivo, nombre)
            except ErrorLecturaLibro:
                logger.exception("Lote de carga abortado en '%s'", nombre)
                raise
            nuevas.extend(parsear_libro(hojas, nombre))

        procesadas = derivar_taller(nuevas)
        self.agregar_materias(procesadas)
        logger.info("Carga completa: %d materia(s) agregada(s), total %d", len(procesadas), len(self))
        return len(procesadas)

    def grupos_curso(self) -> List[GrupoCurso]:
        return agrupar_cursos(self._materias)

    def estudiantes(self) -> List[str]:
        return estudiantes_unicos(self._materias)

    def filtrar(self, filtros: EstadoFiltros) -> ResultadoFiltro:
        return filtrar_datos(self._materias, filtros)
