"""
CLI commands for live SIP capture.
"""
import click
import time
import sys
from typing import Optional

from capture.dummy_backend import DummyBackend
from capture.exceptions import CloseError, SessionError
from capture.icapture_backend import DEFAULT_SIP_FILTER
from capture.scapy_backend import ScapyBackend
from listener.packet_capture import SipPacketCapture

BACKENDS = {
    'scapy': ScapyBackend,
    'dummy': DummyBackend,
}


def _create_backend(name: str):
    try:
        return BACKENDS[name]()
    except Exception as e:
        click.echo(f"Error initializing {name} backend: {e}", err=True)
        if name == 'scapy':
            click.echo("\nLive capture needs libpcap (Npcap on Windows) and", err=True)
            click.echo("usually root/administrator privileges.", err=True)
        sys.exit(1)


def _message_printer(show_raw: bool):
    def echo_message(event):
        where = f" {event.stream_key}" if event.stream_key else ""
        click.echo(f"\n--- SIP message [{event.transport}{where}] ---")
        if show_raw:
            click.echo(event.message)
            click.echo("-" * 40)
        click.echo(event.formatted)
    return echo_message


@click.command()
@click.option('--interface', '-i', required=True, help='Interface to capture from')
@click.option('--filter', '-f', 'filter_expr', default=DEFAULT_SIP_FILTER, show_default=True,
              help='BPF filter')
@click.option('--backend', type=click.Choice(sorted(BACKENDS)), default='scapy', show_default=True,
              help='Capture backend to use')
@click.option('--duration', '-d', type=int, help='Duration in seconds (default: run until Ctrl+C)')
@click.option('--raw/--no-raw', 'show_raw', default=True, show_default=True,
              help='Print the raw message text as well as the numbered lines')
def listen(interface: str, filter_expr: str, backend: str, duration: Optional[int], show_raw: bool):
    """
    Capture SIP messages from a live interface.

    Examples:
      sipwatch listen -i eth0
      sipwatch listen -i eth0 -f "udp port 5080"
      sipwatch listen -i dummy0 --backend dummy --duration 5
    """
    capture_backend = _create_backend(backend)

    try:
        listener = SipPacketCapture(capture_backend, interface, filter=filter_expr,
                                    sink=_message_printer(show_raw))
    except SessionError as e:
        click.echo(f"Failed to start packet capture: {e}", err=True)
        sys.exit(1)

    click.echo(f"Listening on '{interface}' with filter '{filter_expr}'")
    if duration:
        click.echo(f"Duration: {duration} seconds")
    click.echo("Press Ctrl+C to stop\n")

    started = listener.start()
    if not started:
        click.echo("Capture session cannot deliver packets; stopping.", err=True)

    start_time = time.time()
    try:
        while started:
            if duration and (time.time() - start_time) >= duration:
                click.echo(f"\nDuration reached ({duration}s), stopping...")
                break
            time.sleep(0.1)
    except KeyboardInterrupt:
        click.echo("\n\nStopping capture...")
    finally:
        try:
            metadata = listener.stop()
        except CloseError as e:
            click.echo(f"Error stopping capture: {e}", err=True)
            metadata = None

        stats = listener.stats
        click.echo("\n" + "=" * 50)
        click.echo("CAPTURE SUMMARY")
        click.echo("=" * 50)
        if metadata:
            click.echo(f"Session ID:        {metadata['session_id']}")
            click.echo(f"Duration:          {metadata['end_ts'] - metadata['start_ts']:.2f}s")
        click.echo(f"Interface:         {interface}")
        click.echo(f"Frames:            {stats['frames']}")
        click.echo(f"SIP Messages:      {stats['messages']}")
        click.echo(f"Non-SIP Packets:   {stats['no_message']}")
        click.echo(f"Decode Errors:     {stats['decode_errors']}")
        click.echo(f"Extraction Errors: {stats['extraction_errors']}")
        click.echo(f"Processing Errors: {stats['processing_errors']}")
        click.echo(f"Pending Streams:   {stats['pending_streams']}")


@click.command()
@click.option('--backend', type=click.Choice(sorted(BACKENDS)), default='scapy', show_default=True,
              help='Capture backend to query')
def interfaces(backend: str):
    """List interfaces available for capture."""
    capture_backend = _create_backend(backend)
    click.echo("Available interfaces:")
    for iface in capture_backend.list_interfaces():
        status = "UP" if iface.get('is_up', True) else "DOWN"
        desc = iface.get('description', '')
        click.echo(f"  {iface['name']:20} {status:5} {desc}")
