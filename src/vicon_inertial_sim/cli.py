import argparse
import os
import sys

from .log import configure_logging, get_logger

log = get_logger("vicon_inertial_sim.cli")

# Options that can be overridden from the command line, with their types.
OVERRIDABLE_OPTIONS = [
    ("seed_state_init", int, "Seed of the bias random walk generator."),
    ("seed_measurement_imu", int, "Seed of the IMU noise generator."),
    ("seed_measurement_vicon", int, "Seed of the VICON noise generator."),
    ("freq_imu", float, "IMU rate (Hz)."),
    ("freq_cam", float, "Camera trigger rate (Hz)."),
    ("freq_vicon", float, "VICON rate (Hz)."),
    ("dt_knot", float, "B-spline control pose spacing (s)."),
    ("sigma_w", float, "Gyroscope white noise density."),
    ("sigma_a", float, "Accelerometer white noise density."),
    ("sigma_wb", float, "Gyroscope bias random walk density."),
    ("sigma_ab", float, "Accelerometer bias random walk density."),
    ("sigma_vicon_pos", float, "VICON position noise (m)."),
    ("sigma_vicon_ori", float, "VICON orientation noise (rad)."),
    ("distance_threshold", float, "Distance (m) to travel before measurements start."),
]


def build_parser():
    parser = argparse.ArgumentParser(
        description="Vicon-inertial simulator: IMU, camera trigger and VICON streams from a ground-truth trajectory.")
    parser.add_argument("--traj", type=str, required=True, help="Trajectory file (t qx qy qz qw px py pz).")
    parser.add_argument("--output_dir", type=str, required=True, help="Directory for the generated measurement files.")
    parser.add_argument("--config", type=str, default=None, help="YAML file with simulator options.")
    for name, type_, help_text in OVERRIDABLE_OPTIONS:
        parser.add_argument(f"--{name}", type=type_, default=None, help=help_text)
    parser.add_argument("--gravity", type=float, nargs=3, default=None, help="Gravity vector in the global frame.")
    parser.add_argument("--log_level", type=str, default="INFO", help="Logging level.")
    parser.add_argument("--profile", action="store_true", help="Enable cProfile for performance profiling.")
    return parser


def load_params(args):
    from .params import SimulatorParams

    params = SimulatorParams.from_yaml(args.config) if args.config else SimulatorParams()
    overrides = {name: getattr(args, name) for name, _, _ in OVERRIDABLE_OPTIONS
                 if getattr(args, name) is not None}
    if args.gravity is not None:
        overrides["gravity"] = tuple(args.gravity)
    return params.replace(**overrides)


def run_simulation(sim):
    """
    Pulls every stream until the simulator is exhausted, always taking the
    stream whose next tick is earliest (IMU first on ties).
    Returns (imu, cam, vicon, states) lists; states are ground truth at the IMU times.
    """
    imu, cam, vicon, states = [], [], [], []
    while sim.ok():
        t_imu, t_cam, t_vicon = sim.next_imu_time, sim.next_cam_time, sim.next_vicon_time
        if t_imu <= t_cam and t_imu <= t_vicon:
            meas = sim.get_next_imu()
            if meas is None:
                break
            imu.append(meas)
            state = sim.get_state(meas.t)
            if state is not None:
                states.append(state)
        elif t_cam <= t_vicon:
            t = sim.get_next_cam()
            if t is None:
                break
            cam.append(t)
        else:
            meas = sim.get_next_vicon()
            if meas is None:
                break
            vicon.append(meas)
    return imu, cam, vicon, states


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    profiler = None
    if args.profile:
        import cProfile
        profiler = cProfile.Profile()
        log.info("Performance profiling enabled")
        profiler.enable()

    status = actual_main_operation(args)

    if profiler is not None:
        import pstats
        profiler.disable()
        print("\n--- Performance Profile ---")
        pstats.Stats(profiler).sort_stats('cumulative').print_stats(20)
    return status


def actual_main_operation(args):
    """Encapsulates the main operational logic of the CLI for profiling."""
    from .errors import SimulatorError
    from .io import CamWriter, ImuWriter, StateWriter, ViconWriter
    from .simulator import Simulator

    try:
        params = load_params(args)
        sim = Simulator.from_file(args.traj, params)

        imu, cam, vicon, states = run_simulation(sim)

        os.makedirs(args.output_dir, exist_ok=True)
        ImuWriter(os.path.join(args.output_dir, "imu.txt")).write(imu)
        CamWriter(os.path.join(args.output_dir, "cam.txt")).write(cam)
        ViconWriter(os.path.join(args.output_dir, "vicon.txt")).write(vicon)
        StateWriter(os.path.join(args.output_dir, "groundtruth.txt")).write(states)
        sim.save_true_bias(os.path.join(args.output_dir, "bias.txt"))
    except FileNotFoundError as err:
        log.error("File not found: %s", err.filename)
        return 1
    except (SimulatorError, OSError) as err:
        log.error("%s", err)
        return 1

    log.info("Wrote %d IMU, %d camera and %d VICON measurements to %s",
             len(imu), len(cam), len(vicon), args.output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
