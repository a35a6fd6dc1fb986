# calificaciones/filtros.py — Filtros por estudiante, materia, curso y mínimo de desaprobadas
from dataclasses import dataclass, field
from typing import List, Optional

from calificaciones.estadisticas import calcular_estadisticas
from calificaciones.modelos import (
    EstadoFiltros,
    GrupoCurso,
    Materia,
    MateriaEstudiante,
    clave_estudiante,
    normalizar_texto,
)
from calificaciones.procesamiento import agrupar_cursos, buscar_grupo, es_materia_taller


@dataclass
class ResultadoFiltro:
    materias: List[Materia] = field(default_factory=list)
    estudiantes: List[str] = field(default_factory=list)
    cursos: List[str] = field(default_factory=list)
    grupos: List[GrupoCurso] = field(default_factory=list)

    def incluye_estudiante(self, nombre: str) -> bool:
        clave = clave_estudiante(nombre)
        return any(clave_estudiante(e) == clave for e in self.estudiantes)


def contiene(texto: str, busqueda: str) -> bool:
    return normalizar_texto(busqueda) in normalizar_texto(texto)


def _pasa_curso(materia: Materia, grupo_sel: Optional[GrupoCurso], filtros: EstadoFiltros) -> bool:
    if filtros.curso == "all":
        return True
    # Un curso seleccionado que ya no existe no deja pasar nada
    return grupo_sel is not None and materia.curso in grupo_sel.nombres_originales


def _pasa_materia(materia: Materia, filtros: EstadoFiltros) -> bool:
    return not filtros.buscar_materia or contiene(materia.nombre, filtros.buscar_materia)


def _pasa_busqueda_estudiante(materia: Materia, filtros: EstadoFiltros) -> bool:
    if not filtros.buscar_estudiante:
        return True
    return any(contiene(e.nombre, filtros.buscar_estudiante) for e in materia.estudiantes)


def estudiantes_unicos(materias: List[Materia]) -> List[str]:
    """Nombres únicos (sin distinguir mayúsculas/acentos), ordenados."""
    vistos = {}
    for m in materias:
        for e in m.estudiantes:
            if e.nombre.strip():
                vistos.setdefault(e.clave, e.nombre)
    return sorted(vistos.values())


def materias_de_estudiante(
    materias: List[Materia],
    nombre: str,
    filtros: EstadoFiltros,
    grupos: Optional[List[GrupoCurso]] = None,
    ignorar_materia: bool = False,
) -> List[MateriaEstudiante]:
    """
    Materias del estudiante que pasan el filtro de curso y, salvo ignorar_materia,
    el de materia. Incluye las materias de taller de origen (cuentan para estadísticas).
    """
    if grupos is None:
        grupos = agrupar_cursos(materias)
    grupo_sel = buscar_grupo(grupos, filtros.curso)
    resultado = []
    for m in materias:
        datos = m.buscar_estudiante(nombre)
        if datos is None:
            continue
        if not _pasa_curso(m, grupo_sel, filtros):
            continue
        if not ignorar_materia and not _pasa_materia(m, filtros):
            continue
        resultado.append(MateriaEstudiante(materia=m, datos=datos))
    return resultado


def filtrar_materias(materias: List[Materia], filtros: EstadoFiltros, grupos: List[GrupoCurso]) -> List[Materia]:
    """Materias visibles: curso + (materia y estudiante, salvo mínimo activo), sin fuentes de taller."""
    grupo_sel = buscar_grupo(grupos, filtros.curso)
    minimo = filtros.minimo_activo
    visibles = []
    for m in materias:
        if not _pasa_curso(m, grupo_sel, filtros):
            continue
        if not minimo and not _pasa_materia(m, filtros):
            continue
        if not minimo and not _pasa_busqueda_estudiante(m, filtros):
            continue
        if es_materia_taller(m.nombre):
            continue
        visibles.append(m)
    return visibles


def contar_desaprobadas(
    materias: List[Materia],
    nombre: str,
    filtros: EstadoFiltros,
    grupos: Optional[List[GrupoCurso]] = None,
):
    """Estadísticas del estudiante para el tipo de nota elegido en el filtro de mínimo."""
    registros = materias_de_estudiante(materias, nombre, filtros, grupos, ignorar_materia=True)
    return calcular_estadisticas(registros, filtros.tipo_nota_desaprobadas)


def filtrar_estudiantes(materias: List[Materia], filtros: EstadoFiltros, grupos: List[GrupoCurso]) -> List[str]:
    minimo = filtros.minimo_activo
    estudiantes = estudiantes_unicos(materias)

    if filtros.buscar_estudiante and not minimo:
        estudiantes = [e for e in estudiantes if contiene(e, filtros.buscar_estudiante)]

    estudiantes = [
        e for e in estudiantes
        if materias_de_estudiante(materias, e, filtros, grupos, ignorar_materia=minimo)
    ]

    if minimo:
        umbral = filtros.umbral_desaprobadas
        estudiantes = [
            e for e in estudiantes
            if contar_desaprobadas(materias, e, filtros, grupos).desaprobadas >= umbral
        ]
    return estudiantes


def filtrar_cursos(filtros: EstadoFiltros, grupos: List[GrupoCurso]) -> List[str]:
    """Etiquetas de curso con al menos una materia que coincide con las búsquedas activas."""
    if filtros.minimo_activo or not (filtros.buscar_estudiante or filtros.buscar_materia):
        return [g.etiqueta for g in grupos]
    return [
        g.etiqueta for g in grupos
        if any(_pasa_materia(m, filtros) and _pasa_busqueda_estudiante(m, filtros) for m in g.materias)
    ]


def filtrar_datos(materias: List[Materia], filtros: EstadoFiltros) -> ResultadoFiltro:
    grupos = agrupar_cursos(materias)
    return ResultadoFiltro(
        materias=filtrar_materias(materias, filtros, grupos),
        estudiantes=filtrar_estudiantes(materias, filtros, grupos),
        cursos=filtrar_cursos(filtros, grupos),
        grupos=grupos,
    )
