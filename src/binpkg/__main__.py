from binpkg.cli.main_cli import main

main()
