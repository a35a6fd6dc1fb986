import logging
import math
import re
from functools import cmp_to_key
from typing import Dict, List

import numpy as np
import pandas as pd

from calificaciones.config import MATERIAS_TALLER, NOMBRE_TALLER, SIN_CURSO
from calificaciones.modelos import (
    VACIA,
    GrupoCurso,
    Materia,
    Nota,
    RegistroEstudiante,
    normalizar_texto,
)

logger = logging.getLogger(__name__)

_PATRON_DOS_NUMEROS = re.compile(r"(\d+).*?(\d+)")
_PATRON_CURSO = re.compile(r"(\d+)° (\d+)")


def redondeo_personalizado(valor: float) -> int:
    """Redondeo hacia arriba desde .5 (no redondeo bancario): 6.5 → 7, 6.49 → 6."""
    piso = math.floor(valor)
    if valor - piso >= 0.5:
        return math.ceil(valor)
    return piso


def es_materia_taller(nombre: str) -> bool:
    normalizado = normalizar_texto(nombre)
    return any(clave in normalizado for clave in MATERIAS_TALLER)


def _nota_redondeada(valor) -> Nota:
    if pd.isna(valor):
        return VACIA
    return Nota(float(redondeo_personalizado(valor)))


def derivar_taller(materias: List[Materia]) -> List[Materia]:
    """
    Agrega una materia 'TALLER - General' por curso que tenga materias de taller.
    Por estudiante: cuatrimestre1/2 = promedio redondeado de las notas > 0 de las
    materias de taller; final = promedio redondeado de ambos, o el único existente.
    Las valoraciones preliminares quedan vacías.
    """
    fuentes = [m for m in materias if es_materia_taller(m.nombre)]
    if not fuentes:
        return list(materias)

    # Primera materia de taller de cada curso (año/sección del TALLER)
    primera_por_curso: Dict[str, Materia] = {}
    filas = []
    for m in fuentes:
        primera_por_curso.setdefault(m.curso, m)
        for est in m.estudiantes:
            c1 = est.cuatrimestre1.numero
            c2 = est.cuatrimestre2.numero
            filas.append({
                "Curso": m.curso,
                "Clave": est.clave,
                "Estudiante": est.nombre,
                "Cuatrimestre1": np.nan if c1 is None else c1,
                "Cuatrimestre2": np.nan if c2 is None else c2,
            })

    if not filas:
        return list(materias)

    trab = pd.DataFrame(filas, columns=["Curso", "Clave", "Estudiante", "Cuatrimestre1", "Cuatrimestre2"])
    agg = (
        trab
        .groupby(["Curso", "Clave"], sort=False)
        .agg(
            Estudiante=("Estudiante", "first"),
            Cuatrimestre1=("Cuatrimestre1", "mean"),
            Cuatrimestre2=("Cuatrimestre2", "mean"),
        )
        .reset_index()
    )

    resultado = list(materias)
    for curso, grupo in agg.groupby("Curso", sort=False):
        estudiantes = []
        for _, fila in grupo.iterrows():
            c1 = _nota_redondeada(fila["Cuatrimestre1"])
            c2 = _nota_redondeada(fila["Cuatrimestre2"])
            if c1.es_numerica and c2.es_numerica:
                final = Nota(float(redondeo_personalizado((c1.valor + c2.valor) / 2)))
            elif c1.es_numerica:
                final = c1
            else:
                final = c2
            estudiantes.append(RegistroEstudiante(
                nombre=fila["Estudiante"],
                cuatrimestre1=c1,
                cuatrimestre2=c2,
                final=final,
            ))

        if not estudiantes:
            continue
        origen = primera_por_curso[curso]
        resultado.append(Materia(
            nombre=NOMBRE_TALLER,
            curso=origen.curso,
            anio=origen.anio,
            seccion=origen.seccion,
            estudiantes=estudiantes,
        ))
        logger.info("TALLER derivado para '%s' con %d estudiante(s)", curso, len(estudiantes))

    return resultado


def normalizar_curso(curso: str) -> str:
    """'3 2', '3° año 2da' → '3° 2'. Sin dos números, devuelve el texto en mayúsculas."""
    if not curso or not curso.strip():
        return SIN_CURSO
    limpio = curso.strip().upper()
    m = _PATRON_DOS_NUMEROS.search(limpio)
    if m:
        return f"{m.group(1)}° {m.group(2)}"
    return limpio


def _comparar_grupos(a: GrupoCurso, b: GrupoCurso) -> int:
    ma = _PATRON_CURSO.search(a.etiqueta)
    mb = _PATRON_CURSO.search(b.etiqueta)
    if ma and mb:
        clave_a = (int(ma.group(1)), int(ma.group(2)))
        clave_b = (int(mb.group(1)), int(mb.group(2)))
        if clave_a != clave_b:
            return -1 if clave_a < clave_b else 1
    if a.etiqueta == b.etiqueta:
        return 0
    return -1 if a.etiqueta < b.etiqueta else 1


def agrupar_cursos(materias: List[Materia]) -> List[GrupoCurso]:
    grupos: Dict[str, GrupoCurso] = {}
    for m in materias:
        etiqueta = normalizar_curso(m.curso)
        grupo = grupos.setdefault(etiqueta, GrupoCurso(etiqueta=etiqueta))
        grupo.nombres_originales.add(m.curso)
        grupo.materias.append(m)
    return sorted(grupos.values(), key=cmp_to_key(_comparar_grupos))


def buscar_grupo(grupos: List[GrupoCurso], etiqueta: str):
    for g in grupos:
        if g.etiqueta == etiqueta:
            return g
    return None
