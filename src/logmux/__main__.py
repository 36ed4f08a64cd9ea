from logmux.cli import main

main()
