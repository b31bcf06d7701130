from app.core import f1_data


def build_driver_results_map(results, season):
    """
    Devuelve: {nombre_canónico: fila_resultado}
    Las filas con nombres que no reconocemos se ignoran.
    """
    mapping = {}
    for row in results or []:
        name = f1_data.canonical_or_none(season, row.get("driver"), "driver")
        if name:
            mapping[name] = row
    return mapping

def build_team_results_map(team_results, season):
    """
    Devuelve: {equipo_canónico: fila_resultado}
    """
    mapping = {}
    for row in team_results or []:
        team = f1_data.canonical_or_none(season, row.get("team"), "team")
        if team:
            mapping[team] = row
    return mapping

def driver_points(row):
    if not row or row.get("did_not_start"):
        return 0
    return row.get("points", 0) or 0

def team_points(row, is_sprint_weekend):
    if not row:
        return 0

    race = row.get("race_points", row.get("points", 0)) or 0
    sprint = (row.get("sprint_points", 0) or 0) if is_sprint_weekend else 0
    total = race + sprint

    # Carga manual: solo viene el total
    if total == 0 and row.get("total_points"):
        total = row["total_points"]
    return total


class ScoringService:
    """
    Convierte (selección, resultado, cartas) en puntos.

    Solo suma los puntos que ya trae el resultado oficial; el efecto numérico
    de cada carta lo aplica el servicio de efectos, fuera de este backend.
    """

    def calculate_race_points(self, selection, race_result, card_activation=None):
        season = race_result.season
        is_sprint = race_result.is_sprint_weekend

        race_map = build_driver_results_map(race_result.results, season)
        sprint_map = build_driver_results_map(race_result.sprint_results, season)
        team_map = build_team_results_map(race_result.team_results, season)

        # 1. Piloto principal (0 si no sale)
        main_row = race_map.get(selection.main_driver)
        main_dns = bool(main_row and main_row.get("did_not_start"))
        main = driver_points(main_row)

        # 2. Reserva: en sprint puntúa la sprint; si no, solo si el principal no sale
        reserve = 0
        if is_sprint:
            reserve = driver_points(sprint_map.get(selection.reserve_driver))
        elif main_dns:
            reserve = driver_points(race_map.get(selection.reserve_driver))

        # 3. Equipo
        team = team_points(team_map.get(selection.team), is_sprint)

        breakdown = {
            "main_driver": selection.main_driver,
            "reserve_driver": selection.reserve_driver,
            "team": selection.team,
            "main_driver_points": main,
            "reserve_driver_points": reserve,
            "team_points": team,
            "is_sprint_weekend": is_sprint,
        }

        if card_activation is not None:
            breakdown["driver_card"] = card_activation.driver_card.name if card_activation.driver_card else None
            breakdown["team_card"] = card_activation.team_card.name if card_activation.team_card else None

        return {
            "total_points": main + reserve + team,
            "breakdown": breakdown,
        }
