from typing import Iterable, List, Optional

import pandas as pd

from calificaciones.config import CODIGOS_APROBADO, CODIGOS_DESAPROBADO, NOTA_APROBACION
from calificaciones.modelos import (
    Estadisticas,
    GrupoCurso,
    Materia,
    MateriaEstudiante,
    Nota,
    TipoNota,
    clave_estudiante,
    normalizar_texto,
)
from calificaciones.procesamiento import es_materia_taller


def aprobada(nota: Nota, tipo: TipoNota) -> Optional[bool]:
    """
    True/False si la nota cuenta como aprobada/desaprobada, None si no fue evaluada.
    Los códigos TEA/TEP/TED solo cuentan en las valoraciones preliminares; 0 es 'sin evaluar'.
    """
    tipo = TipoNota(tipo)
    if tipo.es_preliminar and nota.es_codigo:
        if nota.valor in CODIGOS_APROBADO:
            return True
        if nota.valor in CODIGOS_DESAPROBADO:
            return False
        return None
    numero = nota.numero
    if numero is None:
        return None
    return numero >= NOTA_APROBACION


def estado_nota(nota: Nota, tipo: TipoNota) -> str:
    resultado = aprobada(nota, tipo)
    if resultado is None:
        return "N/A"
    return "APROBADO" if resultado else "DESAPROBADO"


def es_tea(nota: Nota, tipo: TipoNota) -> bool:
    return TipoNota(tipo).es_preliminar and nota.es_codigo and nota.valor in CODIGOS_APROBADO


def tasa_aprobacion(aprobadas: int, total: int) -> float:
    return (aprobadas / total) * 100 if total > 0 else 0.0


def calcular_estadisticas(registros: Iterable[MateriaEstudiante], tipo: TipoNota) -> Estadisticas:
    """
    Cuenta total/aprobadas/desaprobadas según `tipo`.
    El promedio se calcula siempre con la calificación final (> 0), sea cual sea `tipo`.
    """
    stats = Estadisticas()
    suma_final = 0.0
    cant_final = 0
    for reg in registros:
        resultado = aprobada(reg.datos.nota(tipo), tipo)
        if resultado is not None:
            stats.total += 1
            if resultado:
                stats.aprobadas += 1
            else:
                stats.desaprobadas += 1

        final = reg.datos.final.numero
        if final is not None:
            suma_final += final
            cant_final += 1

    stats.promedio = suma_final / cant_final if cant_final > 0 else 0.0
    return stats


def contar_tea(registros: Iterable[MateriaEstudiante], tipo: TipoNota) -> int:
    return sum(1 for reg in registros if es_tea(reg.datos.nota(tipo), tipo))


def registros_visibles(materias: List[Materia], estudiantes: List[str]) -> List[MateriaEstudiante]:
    """Pares (materia, estudiante) de las materias dadas restringidos a los estudiantes filtrados."""
    claves = {clave_estudiante(e) for e in estudiantes}
    return [
        MateriaEstudiante(materia=m, datos=e)
        for m in materias
        for e in m.estudiantes
        if e.clave in claves
    ]


def resumen_por_tipo(resultado) -> pd.DataFrame:
    """Totales globales de aprobación por cada tipo de calificación."""
    registros = registros_visibles(resultado.materias, resultado.estudiantes)
    filas = []
    for tipo in TipoNota:
        stats = calcular_estadisticas(registros, tipo)
        filas.append({
            "Tipo": tipo.value,
            "Evaluación": tipo.etiqueta,
            "Total": stats.total,
            "Aprobados": stats.aprobadas,
            "Desaprobados": stats.desaprobadas,
            "TEA": contar_tea(registros, tipo),
            "Tasa": tasa_aprobacion(stats.aprobadas, stats.total),
        })
    return pd.DataFrame(filas, columns=["Tipo", "Evaluación", "Total", "Aprobados", "Desaprobados", "TEA", "Tasa"])


def detalle_por_materia(resultado, tipo: TipoNota) -> pd.DataFrame:
    """Una fila por (materia, curso) visible con al menos una evaluación del tipo dado."""
    columnas = ["Materia", "Curso", "Total", "Aprobados", "Desaprobados", "TEA", "Tasa"]
    filas = []
    for m in resultado.materias:
        registros = registros_visibles([m], resultado.estudiantes)
        stats = calcular_estadisticas(registros, tipo)
        if stats.total == 0:
            continue
        filas.append({
            "Materia": m.nombre,
            "Curso": m.curso,
            "Total": stats.total,
            "Aprobados": stats.aprobadas,
            "Desaprobados": stats.desaprobadas,
            "TEA": contar_tea(registros, tipo),
            "Tasa": tasa_aprobacion(stats.aprobadas, stats.total),
        })
    return pd.DataFrame(filas, columns=columnas)


def resumen_general(resultado, filtros) -> dict:
    """Materias, estudiantes, cursos y registros (estudiante × materia) visibles."""
    busqueda = "" if filtros.minimo_activo else normalizar_texto(filtros.buscar_estudiante)
    registros = sum(
        1 for m in resultado.materias for e in m.estudiantes
        if not busqueda or busqueda in normalizar_texto(e.nombre)
    )
    return {
        "materias": len(resultado.materias),
        "estudiantes": len(resultado.estudiantes),
        "cursos": len(resultado.cursos),
        "registros": registros,
    }


def estadisticas_por_tipo(registros: List[MateriaEstudiante]) -> dict:
    return {tipo: calcular_estadisticas(registros, tipo) for tipo in TipoNota}


def _materias_curso_visibles(grupo: GrupoCurso, resultado, filtros) -> List[Materia]:
    claves = {clave_estudiante(e) for e in resultado.estudiantes}
    visibles = []
    for m in grupo.materias:
        if not any(e.clave in claves for e in m.estudiantes):
            continue
        if (filtros.buscar_materia and not filtros.minimo_activo
                and normalizar_texto(filtros.buscar_materia) not in normalizar_texto(m.nombre)):
            continue
        if es_materia_taller(m.nombre):
            continue
        visibles.append(m)
    return visibles


def estadisticas_por_curso(resultado, filtros) -> List[dict]:
    """
    Por grupo de curso: materias visibles, estudiantes únicos y aprobación de la
    calificación final; con el detalle por materia (incluye 'sin calificar').
    """
    cursos = []
    for grupo in resultado.grupos:
        if filtros.curso != "all" and grupo.etiqueta != filtros.curso:
            continue
        materias = _materias_curso_visibles(grupo, resultado, filtros)
        if not materias:
            continue

        registros = registros_visibles(materias, resultado.estudiantes)
        stats = calcular_estadisticas(registros, TipoNota.FINAL)

        detalle = []
        for m in materias:
            regs_m = registros_visibles([m], resultado.estudiantes)
            st_m = calcular_estadisticas(regs_m, TipoNota.FINAL)
            detalle.append({
                "Materia": m.nombre,
                "Curso": m.curso,
                "Estudiantes": len(regs_m),
                "Aprobados": st_m.aprobadas,
                "Desaprobados": st_m.desaprobadas,
                "Sin calificar": len(regs_m) - st_m.total,
                "Tasa": tasa_aprobacion(st_m.aprobadas, st_m.total),
            })

        cursos.append({
            "curso": grupo.etiqueta,
            "nombres_originales": sorted(grupo.nombres_originales),
            "materias": len(materias),
            "estudiantes": len({r.datos.clave for r in registros}),
            "aprobados": stats.aprobadas,
            "desaprobados": stats.desaprobadas,
            "tasa": tasa_aprobacion(stats.aprobadas, stats.total),
            "detalle": pd.DataFrame(
                detalle,
                columns=["Materia", "Curso", "Estudiantes", "Aprobados", "Desaprobados", "Sin calificar", "Tasa"],
            ),
        })
    return cursos
