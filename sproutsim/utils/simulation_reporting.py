import time
from sproutsim.utils.log import Reporter

r = Reporter()  # get singleton reporter instance


def print_run_info(start, days, mode, n_beds):
    r.report(f"Simulation start: {start:%Y-%m-%d %H:%M}")
    r.report(f"Simulation duration: {days} days in \"{mode.value}\" steps over {n_beds} bed(s)")


def print_runtime_updates(instant, i_day, n_days, time_0):
    elapsed = time.time() - time_0
    elapsed_units = 1., "seconds", 0
    if elapsed > 60:
        elapsed_units = 60., "minutes", 1
        if elapsed > 3600:
            elapsed_units = 3600., "hours", 2
    t_str = round(elapsed/elapsed_units[0], elapsed_units[2])

    r.report(f"Current simulated date = {instant:%Y-%m-%d} (day {i_day} of {n_days})")
    r.report(f"Total time elapsed: {t_str} {elapsed_units[1]}")

    # (time so far) / (days so far) * (days total)
    proj_time = elapsed / max(i_day, 1) * n_days
    proj_units = 1., "seconds", 0
    if proj_time > 60:
        proj_units = 60., "minutes", 1
        if proj_time > 3600:
            proj_units = 3600., "hours", 2
    t_str = round(proj_time/proj_units[0], proj_units[2])
    r.report(f"Projected total run time based on average simulated day: {t_str} {proj_units[1]}")


def print_death_summary(couplers):
    for coupler in couplers:
        for plant_id in coupler.bed.plants:
            info = coupler.death_info(plant_id)
            if info is not None:
                r.report(f"Bed \"{coupler.bed.bed_id}\": plant \"{plant_id}\" died "
                         f"{info.died_at:%Y-%m-%d %H:%M} ({info.reason.value})")
