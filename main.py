# main.py
"""
Command line for the pedestrian / transit simulation. Supports:
 - list-scenarios
 - compare      current vs. proposed transit network over sample trips
 - pedestrians  run the agent population for a number of ticks
"""

import logging
import random
from pathlib import Path
from typing import Optional

import click

import config
from models import InvalidInputError, PedestrianSimConfig
from scenarios import (
    SCENARIO_NAMES,
    TIME_OF_DAY_PRESETS,
    WEATHER_PRESETS,
    SimulationControlConfig,
    format_time_of_day,
    weather_preset,
)
from simulation import SimulationEngine
from transit_data import (
    derive_stops_from_routes,
    load_feature_collection,
    routes_from_feature_collection,
    sample_network,
    stops_from_feature_collection,
)


def _load_network(path: Optional[str], proposed: bool):
    """Routes and stops from a feature collection file, or the sample network."""
    if path is None:
        return sample_network(proposed=proposed)
    fc = load_feature_collection(path)
    routes = routes_from_feature_collection(fc)
    stops = stops_from_feature_collection(fc)
    if not stops:
        stops = derive_stops_from_routes(routes)
    return routes, stops


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("list-scenarios")
def list_scenarios():
    click.echo("Time-of-day scenarios:")
    for name, minutes in TIME_OF_DAY_PRESETS.items():
        click.echo(f" - {name} ({format_time_of_day(minutes)})")
    click.echo(" - custom (use --time HH:MM)")
    click.echo("Weather presets:")
    for name in WEATHER_PRESETS:
        click.echo(f" - {name}")


@cli.command()
@click.option("--current", "current_path", type=click.Path(exists=True, dir_okay=False),
              help="Feature collection with the current routes/stops.")
@click.option("--proposed", "proposed_path", type=click.Path(exists=True, dir_okay=False),
              help="Feature collection with the proposed routes/stops.")
@click.option("--scenario", type=click.Choice(SCENARIO_NAMES), default="rush-hour", show_default=True)
@click.option("--time", "custom_time", help="Clock time HH:MM for the custom scenario.")
@click.option("--trips", default=25, show_default=True, type=click.IntRange(min=0))
@click.option("--seed", default=config.SEED, show_default=True, type=int)
@click.option("--plot", "plot_path", type=click.Path(dir_okay=False),
              help="Write a travel-time chart to this PNG.")
def compare(current_path, proposed_path, scenario, custom_time, trips, seed, plot_path):
    """Compare average travel time between current and proposed networks."""
    try:
        control = SimulationControlConfig.for_scenario(scenario, trip_count=trips, custom_time=custom_time)
    except InvalidInputError as e:
        raise click.BadParameter(str(e), param_hint="--time")

    routes, stops = _load_network(current_path, proposed=False)
    proposed_routes, proposed_stops = _load_network(proposed_path, proposed=True)

    engine = SimulationEngine(routes, stops, rng=random.Random(seed))
    pairs = engine.generate_sample_trips(control.trip_count)
    result = engine.compare_scenarios(pairs, proposed_routes, proposed_stops, control.time_of_day)

    imp = result.improvements
    click.echo(f"Scenario: {scenario} at {format_time_of_day(control.time_of_day)}, {len(pairs)} trips")
    click.echo(f"Current avg:  {result.current.average_duration():.2f} min")
    click.echo(f"Proposed avg: {result.proposed.average_duration():.2f} min")
    click.echo(f"Saved: {imp.average_time_saved:.2f} min ({imp.percent_improvement:.1f}%)")
    click.echo(f"Routes used: {', '.join(imp.affected_routes) or 'none'}")

    if plot_path:
        from analysis import plot_travel_time_comparison

        plot_travel_time_comparison(result, out_path=Path(plot_path))
        click.echo(f"Saved chart to {plot_path}")


@cli.command()
@click.option("--network", "network_path", type=click.Path(exists=True, dir_okay=False),
              help="Feature collection with routes/stops (default: sample network).")
@click.option("--agents", default=50, show_default=True, type=click.IntRange(min=0))
@click.option("--steps", default=60, show_default=True, type=click.IntRange(min=0))
@click.option("--dt", default=config.PEDESTRIAN_TIME_STEP, show_default=True, type=float,
              help="Seconds per tick.")
@click.option("--weather", type=click.Choice(sorted(WEATHER_PRESETS)), default="clear", show_default=True)
@click.option("--rush-hour", is_flag=True)
@click.option("--seed", default=config.SEED, show_default=True, type=int)
@click.option("--plot", "plot_path", type=click.Path(dir_okay=False),
              help="Write final agent positions to this PNG.")
def pedestrians(network_path, agents, steps, dt, weather, rush_hour, seed, plot_path):
    """Spawn pedestrians around stops and advance them tick by tick."""
    if dt <= 0:
        raise click.BadParameter("must be positive", param_hint="--dt")

    routes, stops = _load_network(network_path, proposed=False)
    ped_config = PedestrianSimConfig.from_config(weather=weather_preset(weather), time_step=dt)
    engine = SimulationEngine(routes, stops, pedestrian_config=ped_config, rng=random.Random(seed))

    engine.start_pedestrian_simulation()
    engine.add_pedestrian_agents(agents, rush_hour=rush_hour)
    for _ in range(steps):
        engine.update_pedestrian_simulation(dt)
    engine.stop_pedestrian_simulation()

    engine.summary()

    if plot_path:
        from analysis import plot_agent_positions

        plot_agent_positions(engine.get_pedestrian_agents(), stops, out_path=Path(plot_path))
        click.echo(f"Saved chart to {plot_path}")


if __name__ == "__main__":
    cli()
