from snapshot_tool.cli import main


main()
