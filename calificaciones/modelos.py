# calificaciones/modelos.py — Modelo en memoria: notas, estudiantes, materias, cursos y filtros
import math
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set, Union

from calificaciones.config import ETIQUETAS_TIPO_NOTA

_PATRON_DECIMAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def normalizar_texto(texto: str) -> str:
    """Quita acentos y pasa a minúsculas (para comparar nombres y materias)."""
    descompuesto = unicodedata.normalize("NFD", texto or "")
    sin_acentos = "".join(c for c in descompuesto if not unicodedata.combining(c))
    return sin_acentos.lower()


def clave_estudiante(nombre: str) -> str:
    return normalizar_texto(nombre.strip())


class TipoNota(str, Enum):
    PRELIMINAR1 = "preliminar1"
    CUATRIMESTRE1 = "cuatrimestre1"
    PRELIMINAR2 = "preliminar2"
    CUATRIMESTRE2 = "cuatrimestre2"
    FINAL = "final"

    @property
    def etiqueta(self) -> str:
        return ETIQUETAS_TIPO_NOTA[self.value]

    @property
    def es_preliminar(self) -> bool:
        """Las valoraciones preliminares admiten códigos TEA/TEP/TED."""
        return self in (TipoNota.PRELIMINAR1, TipoNota.PRELIMINAR2)


@dataclass(frozen=True)
class Nota:
    """Valor de una celda de calificación: vacía, numérica (float) o código (str)."""
    valor: Optional[Union[float, str]] = None

    @property
    def es_vacia(self) -> bool:
        return self.valor is None

    @property
    def es_numerica(self) -> bool:
        return isinstance(self.valor, float)

    @property
    def es_codigo(self) -> bool:
        return isinstance(self.valor, str)

    @property
    def numero(self) -> Optional[float]:
        """Valor numérico > 0; el 0 se considera 'sin evaluar'."""
        if self.es_numerica and self.valor > 0:
            return self.valor
        return None

    @property
    def texto(self) -> str:
        if self.es_vacia:
            return ""
        if self.es_numerica:
            if math.isfinite(self.valor) and self.valor.is_integer():
                return str(int(self.valor))
            return str(self.valor)
        return self.valor

    def __str__(self) -> str:
        return self.texto


VACIA = Nota()


@dataclass
class RegistroEstudiante:
    nombre: str
    preliminar1: Nota = VACIA
    cuatrimestre1: Nota = VACIA
    preliminar2: Nota = VACIA
    cuatrimestre2: Nota = VACIA
    final: Nota = VACIA

    @property
    def clave(self) -> str:
        return clave_estudiante(self.nombre)

    def nota(self, tipo: TipoNota) -> Nota:
        return getattr(self, TipoNota(tipo).value)


@dataclass
class Materia:
    """Una materia dictada en un curso/sección (una hoja de la planilla)."""
    nombre: str
    curso: str
    anio: str = ""
    seccion: str = ""
    estudiantes: List[RegistroEstudiante] = field(default_factory=list)

    def buscar_estudiante(self, nombre: str) -> Optional[RegistroEstudiante]:
        clave = clave_estudiante(nombre)
        for est in self.estudiantes:
            if est.clave == clave:
                return est
        return None

    def tiene_estudiante(self, nombre: str) -> bool:
        return self.buscar_estudiante(nombre) is not None


@dataclass
class GrupoCurso:
    """Agrupa materias cuyo curso normaliza a la misma etiqueta '{año}° {sección}'."""
    etiqueta: str
    nombres_originales: Set[str] = field(default_factory=set)
    materias: List[Materia] = field(default_factory=list)


@dataclass(frozen=True)
class EstadoFiltros:
    buscar_estudiante: str = ""
    buscar_materia: str = ""
    curso: str = "all"
    tipos_nota: tuple = (TipoNota.FINAL,)
    minimo_desaprobadas: Union[str, int, float, None] = ""
    tipo_nota_desaprobadas: TipoNota = TipoNota.FINAL

    @property
    def umbral_desaprobadas(self) -> Optional[float]:
        """
        Umbral válido (> 0) o None si el filtro está inactivo.
        Solo notación decimal: "2", "2.5", "1e1"; no "1_0", "0x10", "inf".
        """
        valor = self.minimo_desaprobadas
        if valor is None or isinstance(valor, bool):
            return None
        texto = str(valor).strip()
        if not _PATRON_DECIMAL.match(texto):
            return None
        numero = float(texto)
        if not math.isfinite(numero) or numero <= 0:
            return None
        return numero

    @property
    def minimo_activo(self) -> bool:
        return self.umbral_desaprobadas is not None

    @property
    def hay_filtros(self) -> bool:
        return bool(
            self.buscar_estudiante or self.buscar_materia or self.curso != "all"
            or str(self.minimo_desaprobadas or "").strip()
        )


@dataclass
class Estadisticas:
    total: int = 0
    aprobadas: int = 0
    desaprobadas: int = 0
    promedio: float = 0.0


@dataclass
class MateriaEstudiante:
    """Par (materia, datos del estudiante en esa materia)."""
    materia: Materia
    datos: RegistroEstudiante
