#!/usr/bin/env python3

"""
Flow - Wiping paths across the fleet
read the settings yaml (hosts, columns, report directory, mail)
read the worklist spreadsheet - one row per (host, path)
 - rows without a host or a path are dropped
dispatch one task per host and wait for all of them
 - a path that is missing or fails to delete is just a row in the results
 - a host that cannot be reached stops the run, unless isolateHostFailures is set
save the settings back so newly learned host keys stick around
write the html report (and the xlsx export if asked), mail the summary
"""

import argparse
import logging
import sys
import traceback

from fleetwipe.dispatch import Dispatcher
from fleetwipe.models import RunErrors
from fleetwipe.notify import send_summary
from fleetwipe.report import summarize, write_html_report, write_results_workbook
from fleetwipe.settings import SettingsException, load_settings, save_settings
from fleetwipe.worklist import WorklistException, read_worklist

logger = logging.getLogger("fleetwipe")

EXIT_OK = 0
EXIT_HOST_FAILURE = 1
EXIT_BAD_INPUT = 2

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Delete a list of paths across many hosts and report on it.")
    parser.add_argument("worklist",help="xlsx or csv file with a host column and a path column")
    parser.add_argument("-s","--settings",default="fleetwipe.yaml",help="settings yaml (default: %(default)s)")
    parser.add_argument("--report-dir",default=None,help="where to write the html report (overrides the settings file)")
    parser.add_argument("--xlsx",default=None,help="also write the results to this xlsx file")
    parser.add_argument("--no-mail",action="store_true",help="do not send the summary mail even if mail is configured")
    parser.add_argument("-v","--verbose",action="store_true")
    return parser.parse_args(argv)

def run(args) -> int:
    try:
        settings = load_settings(args.settings)
        worklist = read_worklist(args.worklist,settings.hostColumn,settings.pathColumn,settings.sheetName)
    except (SettingsException,WorklistException) as e:
        logger.error(str(e))
        return EXIT_BAD_INPUT

    errors = RunErrors()
    dispatcher = Dispatcher(settings.hosts,settings.isolateHostFailures,settings.recheckAfterFailure)
    results = []
    exitCode = EXIT_OK
    try:
        results = dispatcher.dispatch(worklist.items,errors)
    except Exception as e:
        # report whatever came back before the failing host
        results = getattr(e,"partialResults",[])
        logger.error("Run stopped by a failure on host {} : {}".format(getattr(e,"host","unknown"),e))
        logger.debug(traceback.format_exc())
        exitCode = EXIT_HOST_FAILURE
    finally:
        if len(settings.hosts) > 0:
            save_settings(settings,args.settings)

    if len(errors.hostFailures) > 0:
        exitCode = EXIT_HOST_FAILURE
    summary = summarize(results,worklist.totalRows,errors)
    reportPath = write_html_report(results,summary,args.report_dir or settings.reportDirectory,errors)
    if args.xlsx:
        write_results_workbook(results,args.xlsx)
    if settings.mail is not None and not args.no_mail:
        try:
            send_summary(summary,settings.mail,reportPath)
        except Exception as e:
            logger.error("Unable to send the summary mail : {}".format(e))

    print(summary)
    print("Report : {}".format(reportPath))
    return exitCode

def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s : %(message)s"
    )
    try:
        return run(args)
    except KeyboardInterrupt:
        print("Caught Keyboard Interrupt")
        return EXIT_HOST_FAILURE

if __name__ == "__main__":
    sys.exit(main())
